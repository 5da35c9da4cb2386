"""Collection of annotated routes into route_map.json."""

from __future__ import annotations

import json
import os

from vyx.scanner.go_parser import parse_go_files
from vyx.scanner.routes import AnnotationError, Route
from vyx.scanner.ts_parser import parse_ts_files
from vyx.scanner.tsx_parser import parse_tsx_files
from vyx.scanner.validator import validate

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _base_name(directory: str) -> str:
    return os.path.basename(os.path.normpath(directory)) or os.sep


def _encode(routes: list[Route]) -> bytes:
    document = {"routes": [route.to_dict() for route in routes] or None}
    text = json.dumps(document, indent=2, ensure_ascii=False)
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text.encode("utf-8")


def generate(
    go_dir: str | os.PathLike[str] | None,
    ts_dir: str | os.PathLike[str] | None,
    frontend_dir: str | os.PathLike[str] | None,
    output_path: str | os.PathLike[str],
) -> list[AnnotationError]:
    """Scan the given directories and write the route map to ``output_path``.

    Empty directory arguments are skipped. If any annotation or validation
    error is found, nothing is written and the errors are returned; otherwise
    the file is written and an empty list is returned. I/O failures raise
    ``OSError``.
    """
    routes: list[Route] = []
    errors: list[AnnotationError] = []

    if go_dir:
        go_path = os.fspath(go_dir)
        found, problems = parse_go_files(go_path, "go:" + _base_name(go_path))
        routes.extend(found)
        errors.extend(problems)

    if ts_dir:
        ts_path = os.fspath(ts_dir)
        found, problems = parse_ts_files(ts_path, "node:" + _base_name(ts_path))
        routes.extend(found)
        errors.extend(problems)

    if frontend_dir:
        found, problems = parse_tsx_files(os.fspath(frontend_dir), "node:ssr")
        routes.extend(found)
        errors.extend(problems)

    errors.extend(validate(routes))
    if errors:
        return errors

    data = _encode(routes)
    target = os.fspath(output_path)
    os.makedirs(os.path.dirname(target) or ".", mode=0o755, exist_ok=True)
    with open(target, "wb") as handle:
        handle.write(data)
    return []