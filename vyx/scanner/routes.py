"""Route records discovered by the annotation scanners and their error type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Route:
    """A route found by parsing source annotations.

    ``file`` and ``line`` record where the annotation was found. They are
    left out of the serialised route map.
    """

    path: str
    method: str
    worker_id: str = ""
    auth_roles: list[str] = field(default_factory=list)
    validate: str = ""
    type: str = "api"
    file: str = ""
    line: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the route as it appears in route_map.json."""
        return {
            "path": self.path,
            "method": self.method,
            "worker_id": self.worker_id,
            "auth_roles": list(self.auth_roles),
            "validate": self.validate,
            "type": self.type,
        }


class AnnotationError(Exception):
    """A malformed or semantically invalid annotation at a source location."""

    def __init__(self, file: str, line: int, message: str) -> None:
        super().__init__(f"{file}:{line}: {message}")
        self.file = file
        self.line = line
        self.message = message

    def __repr__(self) -> str:
        return (
            f"AnnotationError(file={self.file!r}, line={self.line!r}, "
            f"message={self.message!r})"
        )