"""Post and like models."""

from datetime import datetime

from . import db


class Post(db.Model):
    """An image post created by a user."""

    __tablename__ = "posts"

    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    images = db.Column(db.JSON, nullable=False, default=list)
    caption = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    author = db.relationship("User", backref=db.backref("posts", lazy="dynamic"))
    likes = db.relationship(
        "PostLike",
        back_populates="post",
        cascade="all",
        order_by="PostLike.id",
    )

    def liked_by(self) -> list[int]:
        return [like.user_id for like in self.likes]

    def to_dict(self, comments_count: int | None = None) -> dict:
        """Serialize the post with its author summary and like membership."""

        liked_by = self.liked_by()
        data = {
            "id": self.id,
            "author": self.author.summary() if self.author else None,
            "images": list(self.images or []),
            "caption": self.caption,
            "likes": liked_by,
            "likes_count": len(liked_by),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if comments_count is not None:
            data["comments_count"] = comments_count
        return data


class PostLike(db.Model):
    """Membership of a user in a post's like set."""

    __tablename__ = "post_likes"
    __table_args__ = (
        db.UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(
        db.Integer, db.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    post = db.relationship("Post", back_populates="likes")
