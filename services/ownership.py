"""Posts, likes and comments, with creator-only mutation of comments."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.comment import COMMENT_MAX_LENGTH, Comment
from models.post import Post, PostLike

from .results import ErrorKind, Result

CAPTION_MAX_LENGTH = 2200


def clean_caption(caption: object) -> Result[str]:
    """Trim ``caption``; a missing caption becomes the empty string."""

    if caption is None:
        return Result.success("")
    if not isinstance(caption, str):
        return Result.failure(ErrorKind.VALIDATION, "Caption must be a string")
    cleaned = caption.strip()
    if len(cleaned) > CAPTION_MAX_LENGTH:
        return Result.failure(
            ErrorKind.VALIDATION,
            f"Caption cannot be longer than {CAPTION_MAX_LENGTH} characters",
        )
    return Result.success(cleaned)


def clean_comment_text(text: object) -> Result[str]:
    """Trim ``text`` and check it fits the comment length bounds."""

    if not isinstance(text, str):
        return Result.failure(ErrorKind.VALIDATION, "Comment text is required")
    cleaned = text.strip()
    if not cleaned:
        return Result.failure(ErrorKind.VALIDATION, "Comment cannot be empty")
    if len(cleaned) > COMMENT_MAX_LENGTH:
        return Result.failure(
            ErrorKind.VALIDATION,
            f"Comment cannot be longer than {COMMENT_MAX_LENGTH} characters",
        )
    return Result.success(cleaned)


class OwnershipEngine:
    """Create and mutate posts and comments on behalf of an authenticated user.

    ``disguise_forbidden`` reports a failed ownership match on a comment as
    ``NOT_FOUND`` rather than ``FORBIDDEN``.
    """

    def __init__(self, disguise_forbidden: bool = False) -> None:
        self.disguise_forbidden = disguise_forbidden

    def _ownership_failure(self) -> Result:
        if self.disguise_forbidden:
            return Result.failure(ErrorKind.NOT_FOUND, "Comment not found.")
        return Result.failure(ErrorKind.FORBIDDEN, "Access denied or comment not found.")

    @staticmethod
    def _comment_counts(post_ids: list[int]) -> dict[int, int]:
        if not post_ids:
            return {}
        rows = (
            db.session.query(Comment.post_id, func.count(Comment.id))
            .filter(Comment.post_id.in_(post_ids))
            .group_by(Comment.post_id)
            .all()
        )
        return {post_id: count for post_id, count in rows}

    def comments_count(self, post_id: int) -> int:
        return self._comment_counts([post_id]).get(post_id, 0)

    def create_post(self, author_id: int, images: list[str], caption: str | None = None) -> Result[Post]:
        cleaned = clean_caption(caption)
        if not cleaned.ok:
            return cleaned

        post = Post(author_id=author_id, images=list(images), caption=cleaned.value)
        db.session.add(post)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return Result.success(post, "Post created successfully.")

    def list_posts(self) -> Result[list[dict]]:
        posts = Post.query.order_by(Post.created_at.desc(), Post.id.desc()).all()
        counts = self._comment_counts([post.id for post in posts])
        return Result.success(
            [post.to_dict(comments_count=counts.get(post.id, 0)) for post in posts]
        )

    def toggle_like(self, post_id: int, user_id: int) -> Result[tuple[Post, bool]]:
        """Flip ``user_id``'s membership in the post's like set.

        Returns the refreshed post and whether the user now likes it.
        """

        post = db.session.get(Post, post_id)
        if post is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Post not found.")

        removed = (
            PostLike.query.filter_by(post_id=post_id, user_id=user_id)
            .delete(synchronize_session=False)
        )
        if not removed:
            db.session.add(PostLike(post_id=post_id, user_id=user_id))
        try:
            db.session.commit()
        except IntegrityError:
            # A concurrent request inserted the same like first.
            db.session.rollback()
        db.session.refresh(post)
        return Result.success((post, user_id in post.liked_by()))

    def list_comments(self, post_id: int) -> Result[list[Comment]]:
        comments = (
            Comment.query.filter_by(post_id=post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .all()
        )
        return Result.success(comments)

    def create_comment(self, author_id: int, post_id: int, text: object) -> Result[Comment]:
        cleaned = clean_comment_text(text)
        if not cleaned.ok:
            return cleaned
        if db.session.get(Post, post_id) is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Post not found.")

        comment = Comment(post_id=post_id, author_id=author_id, text=cleaned.value)
        db.session.add(comment)
        db.session.commit()
        return Result.success(comment, "Comment added successfully.")

    def update_comment(self, requester_id: int, comment_id: int, text: object) -> Result[Comment]:
        cleaned = clean_comment_text(text)
        if not cleaned.ok:
            return cleaned

        updated = (
            Comment.query.filter_by(id=comment_id, author_id=requester_id)
            .update({Comment.text: cleaned.value}, synchronize_session=False)
        )
        db.session.commit()
        if not updated:
            return self._ownership_failure()

        comment = db.session.get(Comment, comment_id, populate_existing=True)
        return Result.success(comment, "Comment updated successfully.")

    def delete_comment(self, requester_id: int, comment_id: int) -> Result[None]:
        deleted = (
            Comment.query.filter_by(id=comment_id, author_id=requester_id)
            .delete(synchronize_session=False)
        )
        db.session.commit()
        if not deleted:
            return self._ownership_failure()
        return Result.success(message="Comment deleted successfully.")
