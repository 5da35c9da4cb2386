"""Extraction of @Page/@Auth annotations from React TSX pages."""

from __future__ import annotations

import os
import re

from vyx.scanner.go_parser import _walk_files
from vyx.scanner.routes import AnnotationError, Route

_PAGE_RE = re.compile(r"^\s*//\s*@Page\(\s*([^)]*?)\s*\)", re.ASCII)
_AUTH_RE = re.compile(r"^\s*//\s*@Auth\(roles:\s*\[([^\]]+)\]\s*\)", re.ASCII)

_ESCAPE_RE = re.compile(
    r"""\\(?:([abfnrtv\\'"])|x([0-9a-fA-F]{2})|([0-7]{3})|u([0-9a-fA-F]{4})|U([0-9a-fA-F]{8}))"""
)
_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


def _code_point(value: int) -> str:
    if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
        raise ValueError("invalid code point")
    return chr(value)


def _unquote(text: str) -> str:
    """Interpret a double-, single- or back-quoted literal; raise ValueError if invalid."""
    if len(text) < 2 or text[0] != text[-1] or text[0] not in "\"'`":
        raise ValueError("not a quoted literal")
    quote, body = text[0], text[1:-1]

    if quote == "`":
        if "`" in body:
            raise ValueError("back-quote inside raw literal")
        return body.replace("\r", "")

    if "\n" in body:
        raise ValueError("newline inside literal")

    out: list[str] = []
    pos = 0
    while pos < len(body):
        char = body[pos]
        if char == quote:
            raise ValueError("unescaped quote inside literal")
        if char != "\\":
            out.append(char)
            pos += 1
            continue
        match = _ESCAPE_RE.match(body, pos)
        if match is None:
            raise ValueError("invalid escape sequence")
        simple, hex2, octal, short_u, long_u = match.groups()
        if simple is not None:
            if simple in "'\"" and simple != quote:
                raise ValueError("escaped quote of the wrong kind")
            out.append(_SIMPLE_ESCAPES[simple])
        elif hex2 is not None:
            out.append(chr(int(hex2, 16)))
        elif octal is not None:
            value = int(octal, 8)
            if value > 0xFF:
                raise ValueError("octal escape out of range")
            out.append(chr(value))
        else:
            out.append(_code_point(int(short_u or long_u, 16)))
        pos = match.end()

    result = "".join(out)
    if quote == "'" and len(result) != 1:
        raise ValueError("character literal must hold one character")
    return result


def parse_role_list(raw: str) -> list[str]:
    """Split a comma-separated, possibly quoted list of roles.

    ``'"user", "admin"'`` gives ``["user", "admin"]``. A part that is a valid
    quoted literal is unquoted (even when empty); any other non-empty part is
    kept as written.
    """
    roles: list[str] = []
    for part in raw.split(","):
        part = part.strip()
        try:
            roles.append(_unquote(part))
        except ValueError:
            if part:
                roles.append(part)
    return roles


def _parse_tsx_file(path: str, worker_id: str) -> tuple[list[Route], list[AnnotationError]]:
    routes: list[Route] = []
    errors: list[AnnotationError] = []

    try:
        handle = open(path, encoding="utf-8", errors="replace", newline="\n")
    except OSError:
        return [], []

    pending: Route | None = None

    with handle:
        for line_num, raw in enumerate(handle, start=1):
            line = raw.rstrip("\n").removesuffix("\r")

            page = _PAGE_RE.match(line)
            if page:
                if pending is not None:
                    routes.append(pending)
                page_path = page.group(1).strip()
                if not page_path:
                    errors.append(
                        AnnotationError(path, line_num, "@Page requires a non-empty path")
                    )
                    pending = None
                    continue
                pending = Route(
                    path=page_path,
                    method="GET",
                    worker_id=worker_id,
                    type="page",
                    file=path,
                    line=line_num,
                )
                continue

            auth = _AUTH_RE.match(line)
            if auth and pending is not None:
                pending.auth_roles = parse_role_list(auth.group(1))
                continue

            stripped = line.strip()
            if pending is not None and stripped and not stripped.startswith("//"):
                routes.append(pending)
                pending = None

    if pending is not None:
        routes.append(pending)

    return routes, errors


def parse_tsx_files(
    directory: str | os.PathLike[str], worker_id: str
) -> tuple[list[Route], list[AnnotationError]]:
    """Scan every ``*.tsx`` file under ``directory`` for page annotations.

    Every page becomes a GET route of type ``"page"`` served by ``worker_id``.
    Unreadable files are skipped silently.
    """
    routes: list[Route] = []
    errors: list[AnnotationError] = []
    for path in _walk_files(os.fspath(directory)):
        if not os.path.basename(path).endswith(".tsx"):
            continue
        found, problems = _parse_tsx_file(path, worker_id)
        routes.extend(found)
        errors.extend(problems)
    return routes, errors