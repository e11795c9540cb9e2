"""Signed session tokens binding a user identity and role."""

from __future__ import annotations

from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from .results import ErrorKind, Result


def issue(identity: int | str, role: str, ttl: timedelta | None = None) -> str:
    """Return an access token for ``identity``.

    Without ``ttl`` the token lifetime comes from ``JWT_ACCESS_TOKEN_EXPIRES``.
    """

    return create_access_token(
        identity=str(identity),
        additional_claims={"role": role},
        expires_delta=ttl,
    )


def verify(token: str) -> Result[dict]:
    """Decode ``token`` and return its claims, or an unauthenticated failure."""

    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException):
        return Result.failure(ErrorKind.UNAUTHENTICATED, "Invalid or expired token.")

    if claims.get("type") != "access" or not claims.get("sub"):
        return Result.failure(ErrorKind.UNAUTHENTICATED, "Invalid or expired token.")
    return Result.success(claims)
