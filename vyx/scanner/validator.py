"""Semantic checks over a set of discovered routes."""

from __future__ import annotations

import json
from collections.abc import Iterable

from vyx.scanner.routes import AnnotationError, Route

VALID_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def validate(routes: Iterable[Route]) -> list[AnnotationError]:
    """Check every route and return the semantic errors found, in order.

    Each error carries the file and line of the route it concerns.
    """
    errors: list[AnnotationError] = []
    seen: set[str] = set()

    for route in routes:
        if route.method not in VALID_METHODS:
            errors.append(
                AnnotationError(
                    route.file,
                    route.line,
                    f"unknown HTTP method {_quote(route.method)} on route {route.path}",
                )
            )
        if not route.path.startswith("/"):
            errors.append(
                AnnotationError(
                    route.file,
                    route.line,
                    f"route path {_quote(route.path)} must start with /",
                )
            )
        key = f"{route.method} {route.path}"
        if key in seen:
            errors.append(
                AnnotationError(
                    route.file,
                    route.line,
                    f"duplicate route {route.method} {route.path}",
                )
            )
        seen.add(key)

    return errors