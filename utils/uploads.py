"""Validation helpers for uploaded image files."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Iterable

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest

ALLOWED_IMAGE_TYPES_DEFAULT = {"jpeg", "jpg", "png", "gif", "webp"}


def allowed_extensions() -> set[str]:
    configured = current_app.config.get("ALLOWED_IMAGE_TYPES")
    if not configured:
        return set(ALLOWED_IMAGE_TYPES_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized: set[str] = set()
    for raw in values:
        if not isinstance(raw, str):
            continue

        item = raw.strip().lower()
        if not item:
            continue

        if "/" in item and not item.startswith("."):
            item = item.rsplit("/", 1)[-1]

        item = item.lstrip(".")
        if item:
            normalized.add(item)

    if not normalized:
        return set(ALLOWED_IMAGE_TYPES_DEFAULT)
    if "jpeg" in normalized:
        normalized.add("jpg")
    if "jpg" in normalized:
        normalized.add("jpeg")
    return normalized


def _format_size(limit: int) -> str:
    if limit % (1024 * 1024) == 0:
        return f"{limit // (1024 * 1024)}MB"
    return f"{limit} bytes"


def validate_image(file: FileStorage, max_size: int) -> None:
    """Raise 400 unless ``file`` is a named image within ``max_size`` bytes."""

    if file.filename is None or file.filename.strip() == "":
        raise BadRequest("An image file is required.")

    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if extension not in allowed_extensions():
        allowed = ", ".join(sorted(allowed_extensions()))
        raise BadRequest(f"File type not allowed. Allowed types: {allowed}.")

    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size > max_size:
        raise BadRequest(f"File exceeds the maximum upload size of {_format_size(max_size)}.")


def build_unique_filename(original: str) -> str:
    suffix = Path(original).suffix.lower()
    return f"{uuid.uuid4().hex}{suffix}"
