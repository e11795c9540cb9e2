"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re

from flask import Request
from werkzeug.exceptions import BadRequest

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationFailed(BadRequest):
    """400 carrying the list of per-field messages."""

    def __init__(self, errors: list[str], description: str = "Validation failed"):
        super().__init__(description)
        self.payload = {"errors": list(errors)}


def parse_json_request(req: Request, *, allow_empty: bool = False) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    return data


def clean_email(data: dict, errors: list[str], key: str = "email") -> str:
    """Return the trimmed email from ``data``; append to ``errors`` if invalid."""

    raw = data.get(key)
    if not isinstance(raw, str) or not raw.strip():
        errors.append(f"{key} is required")
        return ""
    email = raw.strip()
    if not EMAIL_PATTERN.match(email):
        errors.append(f"{key} must be a valid email")
    return email


def clean_string(
    data: dict,
    key: str,
    errors: list[str],
    *,
    min_length: int = 1,
    max_length: int | None = None,
    strip: bool = True,
) -> str:
    """Return ``data[key]`` as a bounded string; append to ``errors`` if not."""

    raw = data.get(key)
    if raw is None or raw == "":
        errors.append(f"{key} is required")
        return ""
    if not isinstance(raw, str):
        errors.append(f"{key} must be a string")
        return ""

    value = raw.strip() if strip else raw
    if len(value) < min_length:
        if min_length <= 1:
            errors.append(f"{key} cannot be empty")
        else:
            errors.append(f"{key} must be at least {min_length} characters")
    elif max_length is not None and len(value) > max_length:
        errors.append(f"{key} cannot be longer than {max_length} characters")
    return value
