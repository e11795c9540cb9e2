"""User model definition."""

from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


USER_ROLES = ("user", "admin")
DEFAULT_AVATAR = "/uploads/default.png"


class User(db.Model):
    """Account credentials, verification state and public profile."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="user")
    is_verified = db.Column(db.Boolean, nullable=False, default=False)

    otp = db.Column(db.String(6), nullable=True)
    otp_expiry = db.Column(db.DateTime, nullable=True)
    reset_token = db.Column(db.String(128), nullable=True, index=True)
    reset_expiry = db.Column(db.DateTime, nullable=True)

    name = db.Column(db.String(100), nullable=False)
    bio = db.Column(db.String(500), nullable=False, default="")
    avatar = db.Column(db.String(255), nullable=False, default=DEFAULT_AVATAR)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def issue_otp(self, code: str, expires_at: datetime) -> None:
        self.otp = code
        self.otp_expiry = expires_at

    def clear_otp(self) -> None:
        self.otp = None
        self.otp_expiry = None

    def mark_verified(self) -> None:
        """Mark the user as verified and drop the pending code."""

        self.is_verified = True
        self.clear_otp()

    def issue_reset_token(self, token: str, expires_at: datetime) -> None:
        self.reset_token = token
        self.reset_expiry = expires_at

    def clear_reset_token(self) -> None:
        self.reset_token = None
        self.reset_expiry = None

    def otp_matches(self, code: str, now: datetime) -> bool:
        """Return True when ``code`` equals the stored, unexpired OTP."""

        if not self.otp or self.otp_expiry is None:
            return False
        if self.otp_expiry <= now:
            return False
        return self.otp == code

    def summary(self) -> dict:
        """Author fields embedded in posts and comments."""

        return {"id": self.id, "name": self.name, "avatar": self.avatar}

    def to_dict(self) -> dict:
        """Serialize the profile-safe view of the user."""

        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "bio": self.bio,
            "avatar": self.avatar,
            "role": self.role,
            "is_verified": self.is_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
