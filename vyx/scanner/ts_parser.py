"""Extraction of @Route/@Page/@Validate/@Auth annotations from TypeScript sources."""

from __future__ import annotations

import os
import re

from vyx.scanner.go_parser import _split_roles, _walk_files
from vyx.scanner.routes import AnnotationError, Route

_ROUTE_RE = re.compile(r"@Route\(\s*(\w+)\s+([^)]+)\)", re.ASCII)
_VALIDATE_RE = re.compile(r"@Validate\(\s*([^)]+)\s*\)", re.ASCII)
_AUTH_RE = re.compile(r"@Auth\(roles:\s*\[([^\]]+)\]\)", re.ASCII)
_PAGE_RE = re.compile(r"@Page\(([^)]+)\)", re.ASCII)


def _build_ts_route(
    file: str,
    line: int,
    route_annot: str,
    page_annot: str,
    validate_annot: str,
    auth_annot: str,
    worker_id: str,
) -> Route:
    if route_annot:
        match = _ROUTE_RE.search(route_annot)
        if match is None:
            raise AnnotationError(file, line, "malformed @Route annotation")
        method = match.group(1).strip().upper()
        path = match.group(2).strip()
        route_type = "api"
    elif page_annot:
        match = _PAGE_RE.search(page_annot)
        if match is None:
            raise AnnotationError(file, line, "malformed @Page annotation")
        method = "GET"
        path = match.group(1).strip()
        route_type = "page"
    else:
        raise AnnotationError(file, line, "no @Route or @Page annotation found")

    validate = ""
    if validate_annot:
        vmatch = _VALIDATE_RE.search(validate_annot)
        if vmatch:
            validate = vmatch.group(1).strip()

    roles: list[str] = []
    if auth_annot:
        amatch = _AUTH_RE.search(auth_annot)
        if amatch:
            roles = _split_roles(amatch.group(1))

    return Route(
        path=path,
        method=method,
        worker_id=worker_id,
        auth_roles=roles,
        validate=validate,
        type=route_type,
        file=file,
        line=line,
    )


def _parse_ts_file(path: str, worker_id: str) -> tuple[list[Route], list[AnnotationError]]:
    routes: list[Route] = []
    errors: list[AnnotationError] = []

    try:
        handle = open(path, encoding="utf-8", errors="replace", newline="\n")
    except OSError as exc:
        return [], [AnnotationError(path, 0, f"cannot open file: {exc}")]

    pending_route = pending_validate = pending_auth = pending_page = ""
    route_line = 0

    def flush() -> None:
        try:
            routes.append(
                _build_ts_route(
                    path,
                    route_line,
                    pending_route,
                    pending_page,
                    pending_validate,
                    pending_auth,
                    worker_id,
                )
            )
        except AnnotationError as exc:
            errors.append(exc)

    with handle:
        for line_num, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line.startswith("//"):
                if pending_route or pending_page:
                    flush()
                    pending_route = pending_validate = pending_auth = pending_page = ""
                continue

            comment = line[2:].strip()
            if _ROUTE_RE.search(comment):
                pending_route = comment
                route_line = line_num
            elif _PAGE_RE.search(comment):
                pending_page = comment
                route_line = line_num
            elif _VALIDATE_RE.search(comment):
                pending_validate = comment
            elif _AUTH_RE.search(comment):
                pending_auth = comment

    if pending_route or pending_page:
        flush()

    return routes, errors


def parse_ts_files(
    directory: str | os.PathLike[str], worker_id: str
) -> tuple[list[Route], list[AnnotationError]]:
    """Scan every ``*.ts`` and ``*.tsx`` file under ``directory`` for routes and pages.

    Returns the routes found and the annotation errors met, both in walk order.
    """
    routes: list[Route] = []
    errors: list[AnnotationError] = []
    for path in _walk_files(os.fspath(directory)):
        if not path.endswith((".ts", ".tsx")):
            continue
        found, problems = _parse_ts_file(path, worker_id)
        routes.extend(found)
        errors.extend(problems)
    return routes, errors