"""Account lifecycle: registration, OTP verification, login and password reset."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User

from . import tokens
from .cooldown import ResendCooldown
from .notifications import (
    NotificationError,
    NotificationGateway,
    otp_notification,
    password_reset_notification,
)
from .results import ErrorKind, Result

OTP_LENGTH = 6
FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent."


def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def generate_reset_token() -> str:
    return secrets.token_hex(32)


class AuthFlow:
    """Drive the verification and credential state of user accounts.

    Every public method returns a :class:`~services.results.Result`; nothing
    here raises for expected failures.
    """

    def __init__(
        self,
        gateway: NotificationGateway,
        cooldown: ResendCooldown,
        *,
        otp_ttl: timedelta = timedelta(minutes=10),
        reset_ttl: timedelta = timedelta(hours=1),
        client_origin: str = "http://localhost:3000",
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.gateway = gateway
        self.cooldown = cooldown
        self.otp_ttl = otp_ttl
        self.reset_ttl = reset_ttl
        self.client_origin = client_origin.rstrip("/")
        self.clock = clock

    @classmethod
    def from_config(cls, config, gateway: NotificationGateway) -> "AuthFlow":
        return cls(
            gateway,
            ResendCooldown(config.get("OTP_RESEND_COOLDOWN", 60)),
            otp_ttl=config.get("OTP_TTL", timedelta(minutes=10)),
            reset_ttl=config.get("RESET_TOKEN_TTL", timedelta(hours=1)),
            client_origin=config.get("CLIENT_ORIGIN") or "http://localhost:3000",
        )

    @staticmethod
    def _find_by_email(email: str) -> User | None:
        return User.query.filter_by(email=email).first()

    def _send_otp(self, user: User) -> Result[None]:
        minutes = int(self.otp_ttl.total_seconds() // 60)
        try:
            self.gateway.send(otp_notification(user.email, user.otp, minutes))
        except NotificationError:
            current_app.logger.warning("OTP email to %s failed", user.email, exc_info=True)
            return Result.failure(ErrorKind.INTERNAL, "An unexpected error occurred.")
        return Result.success()

    def register(self, email: str, password: str, name: str) -> Result[User]:
        if self._find_by_email(email) is not None:
            return Result.failure(ErrorKind.CONFLICT, "Email already registered.")

        user = User(email=email, name=name)
        user.set_password(password)
        user.issue_otp(generate_otp(), self.clock() + self.otp_ttl)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return Result.failure(ErrorKind.CONFLICT, "Email already registered.")

        current_app.logger.info("Registered user %s pending verification", user.id)
        sent = self._send_otp(user)
        if not sent.ok:
            return Result.failure(sent.error, sent.message)
        return Result.success(user, "Registration successful. Check your email for OTP.")

    def verify_otp(self, email: str, code: str) -> Result[User]:
        user = self._find_by_email(email)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, "User not found.")
        if user.is_verified:
            return Result.failure(ErrorKind.ALREADY_VERIFIED, "User is already verified.")
        if not user.otp_matches(code, self.clock()):
            return Result.failure(ErrorKind.INVALID_OR_EXPIRED, "Invalid or expired OTP.")

        user.mark_verified()
        db.session.commit()
        self.cooldown.reset(email)
        current_app.logger.info("User %s verified", user.id)
        return Result.success(user, "Email verified successfully.")

    def login(self, email: str, password: str) -> Result[tuple[str, User]]:
        user = self._find_by_email(email)
        if user is None or not user.check_password(password):
            return Result.failure(
                ErrorKind.INVALID_CREDENTIALS, "Invalid email or password."
            )
        if not user.is_verified:
            return Result.failure(
                ErrorKind.NOT_VERIFIED,
                "Please verify your email before logging in.",
                email=user.email,
            )

        token = tokens.issue(user.id, user.role)
        return Result.success((token, user))

    def resend_otp(self, email: str) -> Result[User]:
        user = self._find_by_email(email)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, "User not found.")
        if user.is_verified:
            return Result.failure(ErrorKind.ALREADY_VERIFIED, "User is already verified.")

        wait = self.cooldown.remaining(email)
        if wait > 0:
            return Result.failure(
                ErrorKind.RATE_LIMITED,
                f"Please wait {wait} seconds before requesting a new OTP.",
                retry_after=wait,
            )

        user.issue_otp(generate_otp(), self.clock() + self.otp_ttl)
        db.session.commit()

        sent = self._send_otp(user)
        if not sent.ok:
            return Result.failure(sent.error, sent.message)
        self.cooldown.mark(email)
        return Result.success(user, "A new OTP has been sent to your email.")

    def forgot_password(self, email: str) -> Result[None]:
        user = self._find_by_email(email)
        if user is None:
            return Result.success(message=FORGOT_PASSWORD_MESSAGE)

        token = generate_reset_token()
        user.issue_reset_token(token, self.clock() + self.reset_ttl)
        db.session.commit()

        reset_url = f"{self.client_origin}/reset-password/{token}"
        minutes = int(self.reset_ttl.total_seconds() // 60)
        try:
            self.gateway.send(password_reset_notification(user.email, reset_url, minutes))
        except NotificationError:
            # Same response as for unknown addresses.
            current_app.logger.warning("Reset email to user %s failed", user.id, exc_info=True)
        return Result.success(message=FORGOT_PASSWORD_MESSAGE)

    def reset_password(self, token: str, new_password: str) -> Result[User]:
        user = (
            User.query.filter(User.reset_token == token)
            .filter(User.reset_expiry > self.clock())
            .first()
        )
        if user is None:
            return Result.failure(ErrorKind.INVALID_OR_EXPIRED, "Invalid or expired token.")

        user.set_password(new_password)
        user.clear_reset_token()
        db.session.commit()
        current_app.logger.info("Password reset for user %s", user.id)
        return Result.success(user, "Password reset successfully.")

    def current_user(self, identity: int | str | None) -> Result[User]:
        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            return Result.failure(ErrorKind.NOT_FOUND, "User not found.")

        user = db.session.get(User, user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, "User not found.")
        return Result.success(user)
