"""Bearer-token guard for protected endpoints."""

from __future__ import annotations

import re
from functools import wraps

from flask import g, request
from werkzeug.exceptions import Unauthorized

from services import tokens

_BEARER_PREFIX = re.compile(r"^bearer\s+", re.IGNORECASE)


def extract_bearer(header_value: str | None) -> str:
    """Strip an optional ``Bearer`` scheme (any case) from a header value."""

    if not header_value:
        return ""
    return _BEARER_PREFIX.sub("", header_value.strip(), count=1).strip()


def session_required(view):
    """Reject the request with 401 unless it carries a valid session token.

    The verified claims are stored on ``flask.g`` for the view to read; the
    user record itself is not loaded.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get("Authorization")
        if not header:
            raise Unauthorized("Access denied. No authorization header provided.")

        token = extract_bearer(header)
        if not token:
            raise Unauthorized("Access denied. Invalid token format.")

        verified = tokens.verify(token)
        if not verified.ok:
            raise Unauthorized(verified.message)

        g.session_claims = verified.value
        return view(*args, **kwargs)

    return wrapper


def current_claims() -> dict:
    return g.get("session_claims") or {}


def current_identity() -> int | None:
    """Return the user id bound to the current session, if any."""

    subject = current_claims().get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
