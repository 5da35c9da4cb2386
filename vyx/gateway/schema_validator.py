"""JSON Schema validation of request bodies with a per-process schema cache."""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import jsonschema
import jsonschema.exceptions
import jsonschema.validators


@dataclass(frozen=True)
class ValidationDetail:
    """One failed check: the JSON pointer of the offending value and why."""

    field: str
    message: str


class SchemaError(Exception):
    """A schema is missing or cannot be compiled, or a body is not JSON."""


class SchemaValidationError(Exception):
    """A body does not satisfy its schema."""

    def __init__(self, details: Iterable[ValidationDetail]) -> None:
        self.details = list(details)
        summary = "; ".join(f"{d.field or '/'}: {d.message}" for d in self.details)
        super().__init__(f"schema validation failed: {summary}")


def _pointer(path: Iterable[Any]) -> str:
    return "".join(
        "/" + str(part).replace("~", "~0").replace("/", "~1") for part in path
    )


class SchemaValidator:
    """Validates bodies against ``<schemas_dir>/<name>.json`` schemas.

    Schemas are compiled on first use, or all at once by ``warm_up``, and
    cached until ``invalidate_cache`` is called.
    """

    def __init__(self, schemas_dir: str | os.PathLike[str] | None) -> None:
        self.schemas_dir = os.fspath(schemas_dir) if schemas_dir else ""
        self._lock = threading.Lock()
        self._cache: dict[str, Any] = {}

    def warm_up(self) -> int:
        """Compile every ``*.json`` file in the schema directory.

        Returns the number compiled. A missing directory is not an error;
        compile failures are gathered and raised together as ``SchemaError``.
        """
        if not self.schemas_dir:
            return 0
        try:
            with os.scandir(self.schemas_dir) as listing:
                entries = sorted(listing, key=lambda entry: entry.name)
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise SchemaError(
                f"schema warm-up: read dir {self.schemas_dir}: {exc}"
            ) from exc

        problems: list[str] = []
        compiled = 0
        for entry in entries:
            if entry.is_dir() or not entry.name.endswith(".json"):
                continue
            try:
                self._compile(entry.name[: -len(".json")])
            except SchemaError as exc:
                problems.append(str(exc))
            else:
                compiled += 1

        if problems:
            raise SchemaError("schema warm-up errors:\n" + "\n".join(problems))
        return compiled

    def invalidate_cache(self) -> None:
        """Drop every compiled schema."""
        with self._lock:
            self._cache = {}

    def validate(self, schema_name: str, body: bytes | str) -> Any:
        """Check ``body`` against the schema ``schema_name`` and return the decoded body.

        Raises ``SchemaError`` if the schema is unavailable or the body is not
        JSON, and ``SchemaValidationError`` if the body breaks the schema.
        """
        validator = self._get(schema_name)
        try:
            instance = json.loads(body)
        except (ValueError, TypeError) as exc:
            raise SchemaError(f"schema: unmarshal body: {exc}") from exc

        errors = list(validator.iter_errors(instance))
        if errors:
            raise SchemaValidationError(
                ValidationDetail(_pointer(error.absolute_path), error.message)
                for error in errors
            )
        return instance

    def _get(self, name: str) -> Any:
        with self._lock:
            validator = self._cache.get(name)
        if validator is not None:
            return validator
        return self._compile(name)

    def _compile(self, name: str) -> Any:
        path = os.path.join(self.schemas_dir, name + ".json")
        if not os.path.exists(path):
            raise SchemaError(f'schema: file not found for "{name}": {path}')

        try:
            with open(path, encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, ValueError) as exc:
            raise SchemaError(f"schema: compile {path}: {exc}") from exc

        if not isinstance(document, (dict, bool)):
            raise SchemaError(f"schema: compile {path}: schema must be an object or boolean")

        validator_class = jsonschema.validators.validator_for(document)
        try:
            validator_class.check_schema(document)
        except jsonschema.exceptions.SchemaError as exc:
            raise SchemaError(f"schema: compile {path}: {exc.message}") from exc

        validator = validator_class(document)
        with self._lock:
            self._cache[name] = validator
        return validator