"""Application configuration module."""

import os
from datetime import timedelta
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y"}


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        hours=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_HOURS", "48"))
    )
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", str(Path("workspace") / "uploads"))

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATE_LIMIT = os.getenv("RATE_LIMIT", "100 per 15 minutes")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")

    # Outbound mail
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.ethereal.email")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", True)
    EMAIL_USER = os.getenv("EMAIL_USER")
    EMAIL_PASS = os.getenv("EMAIL_PASS")
    MAIL_FROM = os.getenv("MAIL_FROM", f"Dev App <{os.getenv('EMAIL_USER', 'no-reply@localhost')}>")
    CLIENT_ORIGIN = os.getenv("CLIENT_ORIGIN", "http://localhost:3000")

    # Account flows
    OTP_TTL = timedelta(minutes=int(os.getenv("OTP_TTL_MINUTES", "10")))
    OTP_RESEND_COOLDOWN = int(os.getenv("OTP_RESEND_COOLDOWN", "60"))
    RESET_TOKEN_TTL = timedelta(minutes=int(os.getenv("RESET_TOKEN_TTL_MINUTES", "60")))

    # Uploads
    MAX_AVATAR_SIZE = int(os.getenv("MAX_AVATAR_SIZE", str(2 * 1024 * 1024)))
    MAX_POST_IMAGE_SIZE = int(os.getenv("MAX_POST_IMAGE_SIZE", str(5 * 1024 * 1024)))
    MAX_POST_IMAGES = int(os.getenv("MAX_POST_IMAGES", "5"))
    ALLOWED_IMAGE_TYPES = os.getenv("ALLOWED_IMAGE_TYPES", "jpg,jpeg,png,gif,webp")

    # Comment ownership failures are reported as 404 instead of 403 when set
    COMMENT_OWNERSHIP_AS_NOT_FOUND = _env_bool("COMMENT_OWNERSHIP_AS_NOT_FOUND", False)
