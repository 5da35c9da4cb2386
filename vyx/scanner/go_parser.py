"""Extraction of @Route/@Validate/@Auth annotations from Go sources."""

from __future__ import annotations

import os
import re
import stat
from collections.abc import Iterator

from vyx.scanner.routes import AnnotationError, Route

_ROUTE_RE = re.compile(r"@Route\(\s*(\w+)\s+([^)]+)\)", re.ASCII)
_VALIDATE_RE = re.compile(r"@Validate\(\s*([^)]+)\s*\)", re.ASCII)
_AUTH_RE = re.compile(r"@Auth\(roles:\s*\[([^\]]+)\]\)", re.ASCII)


def _walk_files(path: str) -> Iterator[str]:
    """Yield every non-directory path under ``path`` in lexical order."""
    try:
        info = os.lstat(path)
    except OSError:
        return
    if not stat.S_ISDIR(info.st_mode):
        yield path
        return
    try:
        names = sorted(os.listdir(path))
    except OSError:
        return
    for name in names:
        yield from _walk_files(os.path.join(path, name))


def _split_roles(raw: str) -> list[str]:
    roles = (part.strip().strip('"') for part in raw.split(","))
    return [role for role in roles if role]


def _extract_validate(annotation: str) -> str:
    if annotation:
        match = _VALIDATE_RE.search(annotation)
        if match:
            return match.group(1).strip()
    return ""


def _extract_roles(annotation: str) -> list[str]:
    if annotation:
        match = _AUTH_RE.search(annotation)
        if match:
            return _split_roles(match.group(1))
    return []


def _build_route(
    file: str, line: int, route_annot: str, validate_annot: str, auth_annot: str, worker_id: str
) -> Route:
    match = _ROUTE_RE.search(route_annot)
    if match is None:
        raise AnnotationError(file, line, "malformed @Route annotation")
    return Route(
        path=match.group(2).strip(),
        method=match.group(1).strip().upper(),
        worker_id=worker_id,
        auth_roles=_extract_roles(auth_annot),
        validate=_extract_validate(validate_annot),
        type="api",
        file=file,
        line=line,
    )


def _parse_go_file(path: str, worker_id: str) -> tuple[list[Route], list[AnnotationError]]:
    routes: list[Route] = []
    errors: list[AnnotationError] = []

    try:
        handle = open(path, encoding="utf-8", errors="replace", newline="\n")
    except OSError as exc:
        return [], [AnnotationError(path, 0, f"cannot open file: {exc}")]

    pending_route = pending_validate = pending_auth = ""
    route_line = 0

    def flush() -> None:
        try:
            routes.append(
                _build_route(path, route_line, pending_route, pending_validate, pending_auth, worker_id)
            )
        except AnnotationError as exc:
            errors.append(exc)

    with handle:
        for line_num, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line.startswith("//"):
                if pending_route:
                    flush()
                    pending_route = pending_validate = pending_auth = ""
                continue

            comment = line[2:].strip()
            if _ROUTE_RE.search(comment):
                pending_route = comment
                route_line = line_num
            elif _VALIDATE_RE.search(comment):
                pending_validate = comment
            elif _AUTH_RE.search(comment):
                pending_auth = comment

    if pending_route:
        flush()

    return routes, errors


def parse_go_files(
    directory: str | os.PathLike[str], worker_id: str
) -> tuple[list[Route], list[AnnotationError]]:
    """Scan every ``*.go`` file under ``directory`` for annotated routes.

    Returns the routes found and the annotation errors met, both in walk order.
    """
    routes: list[Route] = []
    errors: list[AnnotationError] = []
    for path in _walk_files(os.fspath(directory)):
        if not path.endswith(".go"):
            continue
        found, problems = _parse_go_file(path, worker_id)
        routes.extend(found)
        errors.extend(problems)
    return routes, errors