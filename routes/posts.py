"""Posts blueprint: image posts, likes and per-post comment listings."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest

from services.ownership import OwnershipEngine, clean_caption
from storage.local_storage import LocalStorage
from utils.errors import unwrap
from utils.session_guard import current_identity, session_required
from utils.uploads import build_unique_filename, validate_image

MAX_POST_IMAGE_SIZE_DEFAULT = 5 * 1024 * 1024
MAX_POST_IMAGES_DEFAULT = 5

posts_bp = Blueprint("posts", __name__)


def _engine() -> OwnershipEngine:
    return current_app.extensions["ownership"]


def _uploaded_images() -> list[FileStorage]:
    files = [
        file
        for file in request.files.getlist("images")
        if isinstance(file, FileStorage) and file.filename
    ]
    limit = int(current_app.config.get("MAX_POST_IMAGES", MAX_POST_IMAGES_DEFAULT))
    if len(files) > limit:
        raise BadRequest(f"A post can include at most {limit} images.")

    max_size = int(current_app.config.get("MAX_POST_IMAGE_SIZE", MAX_POST_IMAGE_SIZE_DEFAULT))
    for file in files:
        validate_image(file, max_size)
    return files


def _discard(storage: LocalStorage, names: list[str]) -> None:
    for name in names:
        storage.delete(name)


@posts_bp.route("/create", methods=["POST"])
@session_required
def create_post():
    """Store the uploaded images and create a post referencing them."""

    files = _uploaded_images()
    caption = unwrap(clean_caption(request.form.get("caption", "")))

    storage = LocalStorage(current_app.config.get("UPLOAD_DIR"))
    stored: list[str] = []
    try:
        for file in files:
            stored.append(storage.save(file, build_unique_filename(file.filename)))
        result = _engine().create_post(
            current_identity(), [storage.url(name) for name in stored], caption
        )
    except Exception:
        _discard(storage, stored)
        raise
    if not result.ok:
        _discard(storage, stored)
    post = unwrap(result)
    return (
        jsonify({"message": result.message, "post": post.to_dict(comments_count=0)}),
        HTTPStatus.CREATED,
    )


@posts_bp.route("", methods=["GET"])
def list_posts():
    """Return every post, newest first, with comment counts."""

    posts = unwrap(_engine().list_posts())
    return jsonify({"posts": posts, "count": len(posts)})


@posts_bp.route("/<int:post_id>/like", methods=["PUT"])
@session_required
def toggle_like(post_id: int):
    """Like the post, or remove the like if the caller already liked it."""

    engine = _engine()
    post, liked = unwrap(engine.toggle_like(post_id, current_identity()))
    payload = post.to_dict(comments_count=engine.comments_count(post.id))
    return jsonify({"post": payload, "likes": payload["likes_count"], "liked": liked})


@posts_bp.route("/<int:post_id>/comments", methods=["GET"])
def list_comments(post_id: int):
    comments = unwrap(_engine().list_comments(post_id))
    return jsonify(
        {"comments": [comment.to_dict() for comment in comments], "count": len(comments)}
    )
