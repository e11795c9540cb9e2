"""Outbound email notifications."""

from __future__ import annotations

import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

from flask import current_app


class NotificationError(Exception):
    """Raised when a message could not be handed to the transport."""


@dataclass(frozen=True)
class Notification:
    """A rendered message ready to be sent."""

    to: str
    subject: str
    body: str


class NotificationGateway(ABC):
    """Interface for message transports."""

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver ``notification`` or raise :class:`NotificationError`."""


class SMTPGateway(NotificationGateway):
    """Send plain-text email through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SMTPGateway":
        return cls(
            host=config.get("SMTP_HOST"),
            port=int(config.get("SMTP_PORT", 587)),
            sender=config.get("MAIL_FROM"),
            username=config.get("EMAIL_USER"),
            password=config.get("EMAIL_PASS"),
            use_tls=config.get("SMTP_USE_TLS", True),
        )

    def _build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.to
        message["Subject"] = notification.subject
        message.set_content(notification.body)
        return message

    def send(self, notification: Notification) -> None:
        message = self._build_message(notification)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as conn:
                if self.use_tls:
                    conn.starttls()
                if self.username and self.password:
                    conn.login(self.username, self.password)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Could not send mail to {notification.to}") from exc

        current_app.logger.info(
            "Sent '%s' email to %s", notification.subject, notification.to
        )


def otp_notification(email: str, code: str, valid_minutes: int) -> Notification:
    return Notification(
        to=email,
        subject="Your OTP Code",
        body=(
            "Hello,\n\n"
            f"Your OTP code is: {code}\n\n"
            f"Valid for {valid_minutes} minutes.\n\n"
            "Thank you!"
        ),
    )


def password_reset_notification(email: str, reset_url: str, valid_minutes: int) -> Notification:
    return Notification(
        to=email,
        subject="Reset Your Password",
        body=(
            "Hello,\n\n"
            "You (or someone else) requested a password reset.\n\n"
            f"Click the link below to reset your password:\n{reset_url}\n\n"
            f"This link will expire in {valid_minutes} minutes.\n\n"
            "If you didn't request this, please ignore this email.\n\n"
            "Thank you!"
        ),
    )
