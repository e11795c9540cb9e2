"""Profile edits and avatar replacement."""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.user import DEFAULT_AVATAR, User
from storage.abstract_storage import AbstractStorage

from .results import ErrorKind, Result

NAME_MAX_LENGTH = 100
BIO_MAX_LENGTH = 500


def update_profile(user_id: int, changes: dict) -> Result[User]:
    """Apply ``name`` and/or ``bio`` from ``changes`` to the user."""

    fields = {key: changes[key] for key in ("name", "bio") if key in changes}
    if not fields:
        return Result.failure(ErrorKind.VALIDATION, "No profile fields to update.")

    errors = []
    if "name" in fields:
        name = fields["name"]
        if not isinstance(name, str) or not name.strip():
            errors.append("name must be a non-empty string")
        elif len(name.strip()) > NAME_MAX_LENGTH:
            errors.append(f"name cannot be longer than {NAME_MAX_LENGTH} characters")
        else:
            fields["name"] = name.strip()
    if "bio" in fields:
        bio = fields["bio"]
        if bio is None:
            fields["bio"] = ""
        elif not isinstance(bio, str):
            errors.append("bio must be a string")
        elif len(bio) > BIO_MAX_LENGTH:
            errors.append(f"bio cannot be longer than {BIO_MAX_LENGTH} characters")
    if errors:
        return Result.failure(ErrorKind.VALIDATION, "Validation failed", errors=errors)

    user = db.session.get(User, user_id)
    if user is None:
        return Result.failure(ErrorKind.NOT_FOUND, "User not found.")

    for key, value in fields.items():
        setattr(user, key, value)
    db.session.commit()
    return Result.success(user, "Profile updated successfully.")


def update_avatar(user_id: int, storage: AbstractStorage, file_obj, filename: str) -> Result[User]:
    """Store a new avatar blob and point the user's profile at it."""

    user = db.session.get(User, user_id)
    if user is None:
        return Result.failure(ErrorKind.NOT_FOUND, "User not found.")

    previous = user.avatar
    stored = storage.save(file_obj, filename)
    user.avatar = storage.url(stored)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        storage.delete(stored)
        raise

    if previous and previous != DEFAULT_AVATAR:
        removed = storage.delete(storage.name_from_url(previous))
        if not removed:
            current_app.logger.info("Previous avatar %s was already gone", previous)
    return Result.success(user, "Profile picture updated successfully.")
