"""Comment model."""

from datetime import datetime

from . import db


COMMENT_MAX_LENGTH = 1000


class Comment(db.Model):
    """A comment left by a user on a post."""

    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    text = db.Column(db.String(COMMENT_MAX_LENGTH), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    author = db.relationship("User")

    def to_dict(self) -> dict:
        """Serialize the comment."""

        return {
            "id": self.id,
            "post_id": self.post_id,
            "author": self.author.summary() if self.author else None,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
