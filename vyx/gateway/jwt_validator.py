"""Verification of HMAC-signed JSON Web Tokens."""

from __future__ import annotations

from dataclasses import dataclass, field

import jwt

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


@dataclass(frozen=True)
class Claims:
    """The identity carried by a verified token."""

    user_id: str = ""
    roles: list[str] = field(default_factory=list)


class TokenError(Exception):
    """A token is malformed, badly signed, expired or carries invalid claims."""


class JWTValidator:
    """Checks tokens signed with an HMAC algorithm and a shared secret."""

    def __init__(self, secret: bytes | str) -> None:
        self._secret = secret.encode() if isinstance(secret, str) else bytes(secret)

    def validate(self, token: str) -> Claims:
        """Verify ``token`` and return its subject and roles.

        Raises ``TokenError`` for any token that does not verify.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise TokenError(f"jwt: {exc}") from exc

        algorithm = header.get("alg")
        if algorithm not in _HMAC_ALGORITHMS:
            raise TokenError(f"unexpected signing method: {algorithm}")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=_HMAC_ALGORITHMS,
                options={"verify_aud": False, "verify_iat": False},
            )
        except jwt.PyJWTError as exc:
            raise TokenError(f"jwt: {exc}") from exc

        subject = payload.get("sub")
        if subject is None:
            subject = ""
        if not isinstance(subject, str):
            raise TokenError("jwt: invalid token claims")

        roles = payload.get("roles")
        if roles is None:
            roles = []
        if not isinstance(roles, list) or not all(isinstance(role, str) for role in roles):
            raise TokenError("jwt: invalid token claims")

        return Claims(user_id=subject, roles=list(roles))