"""Comments blueprint. Only the author of a comment may edit or delete it."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from services.ownership import OwnershipEngine
from utils.errors import unwrap
from utils.request_validation import ValidationFailed, parse_json_request
from utils.session_guard import current_identity, session_required

comments_bp = Blueprint("comments", __name__)


def _engine() -> OwnershipEngine:
    return current_app.extensions["ownership"]


def _parse_post_id(raw) -> int:
    if isinstance(raw, bool):
        raise ValidationFailed(["postId must be an integer"])
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(["postId must be an integer"]) from None


@comments_bp.route("", methods=["POST"])
@session_required
def create_comment():
    """Add a comment to a post."""

    data = parse_json_request(request)
    raw_post_id = data.get("postId", data.get("post_id"))
    if raw_post_id in (None, ""):
        raise ValidationFailed(["postId is required"])
    post_id = _parse_post_id(raw_post_id)

    result = _engine().create_comment(current_identity(), post_id, data.get("text"))
    comment = unwrap(result)
    return (
        jsonify({"message": result.message, "comment": comment.to_dict()}),
        HTTPStatus.CREATED,
    )


@comments_bp.route("/<int:comment_id>", methods=["PATCH"])
@session_required
def update_comment(comment_id: int):
    data = parse_json_request(request)
    result = _engine().update_comment(current_identity(), comment_id, data.get("text"))
    comment = unwrap(result)
    return jsonify({"message": result.message, "comment": comment.to_dict()})


@comments_bp.route("/<int:comment_id>", methods=["DELETE"])
@session_required
def delete_comment(comment_id: int):
    result = _engine().delete_comment(current_identity(), comment_id)
    unwrap(result)
    return jsonify({"message": result.message})
