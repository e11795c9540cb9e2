"""Profile blueprint: avatar upload and profile edits for the signed-in user."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest

from services import profiles
from storage.local_storage import LocalStorage
from utils.errors import unwrap
from utils.request_validation import parse_json_request
from utils.session_guard import current_identity, session_required
from utils.uploads import build_unique_filename, validate_image

MAX_AVATAR_SIZE_DEFAULT = 2 * 1024 * 1024

users_bp = Blueprint("users", __name__)


@users_bp.route("/update-avatar", methods=["PUT"])
@session_required
def update_avatar():
    """Replace the caller's profile picture with the uploaded image."""

    file = request.files.get("avatar")
    if not isinstance(file, FileStorage) or not file.filename:
        raise BadRequest("No avatar file uploaded.")

    validate_image(file, int(current_app.config.get("MAX_AVATAR_SIZE", MAX_AVATAR_SIZE_DEFAULT)))

    storage = LocalStorage(current_app.config.get("UPLOAD_DIR"))
    result = profiles.update_avatar(
        current_identity(), storage, file, build_unique_filename(file.filename)
    )
    user = unwrap(result)
    return jsonify({"message": result.message, "avatar": user.avatar, "user": user.to_dict()})


@users_bp.route("/update-profile", methods=["PUT"])
@session_required
def update_profile():
    """Update the caller's name and/or bio."""

    data = parse_json_request(request, allow_empty=True)
    result = profiles.update_profile(current_identity(), data)
    user = unwrap(result)
    return jsonify({"message": result.message, "user": user.to_dict()})
