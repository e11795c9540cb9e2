"""Authentication blueprint: registration, OTP verification, login and password reset."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from services import tokens
from services.auth_flow import AuthFlow
from utils.errors import unwrap
from utils.request_validation import (
    ValidationFailed,
    clean_email,
    clean_string,
    parse_json_request,
)
from utils.session_guard import current_identity, session_required

PASSWORD_MIN_LENGTH = 6
NAME_MAX_LENGTH = 100
OTP_LENGTH = 6

auth_bp = Blueprint("auth", __name__)


def _flow() -> AuthFlow:
    return current_app.extensions["auth_flow"]


def _validate_otp(data: dict, errors: list[str]) -> str:
    otp = data.get("otp")
    if isinstance(otp, int) and not isinstance(otp, bool):
        otp = str(otp).zfill(OTP_LENGTH)
    if not isinstance(otp, str) or not otp.strip():
        errors.append("otp is required")
        return ""
    otp = otp.strip()
    if len(otp) != OTP_LENGTH:
        errors.append(f"otp must be {OTP_LENGTH} characters long")
    return otp


def _raise_if(errors: list[str]) -> None:
    if errors:
        raise ValidationFailed(errors)


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Create an unverified account and email it a one-time code."""
    payload = parse_json_request(request)
    errors: list[str] = []
    email = clean_email(payload, errors)
    password = clean_string(
        payload, "password", errors, min_length=PASSWORD_MIN_LENGTH, strip=False
    )
    name = clean_string(payload, "name", errors, max_length=NAME_MAX_LENGTH)
    _raise_if(errors)

    result = _flow().register(email, password, name)
    user = unwrap(result)

    return (
        jsonify({"message": result.message, "user": user.to_dict()}),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/verify-otp", methods=["POST"])
def verify_otp() -> tuple:
    """Confirm ownership of the email address and start a session."""
    payload = parse_json_request(request)
    errors: list[str] = []
    email = clean_email(payload, errors)
    otp = _validate_otp(payload, errors)
    _raise_if(errors)

    result = _flow().verify_otp(email, otp)
    user = unwrap(result)

    return (
        jsonify(
            {
                "message": result.message,
                "access_token": tokens.issue(user.id, user.role),
                "user": user.to_dict(),
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a verified user and return a JWT access token."""
    payload = parse_json_request(request)
    errors: list[str] = []
    email = clean_email(payload, errors)
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.append("password is required")
    _raise_if(errors)

    token, user = unwrap(_flow().login(email, password))
    return (
        jsonify({"access_token": token, "user": user.to_dict()}),
        HTTPStatus.OK,
    )


@auth_bp.route("/resend-otp", methods=["POST"])
def resend_otp() -> tuple:
    """Send a fresh verification code, at most once per cooldown window."""
    payload = parse_json_request(request)
    errors: list[str] = []
    email = clean_email(payload, errors)
    _raise_if(errors)

    result = _flow().resend_otp(email)
    unwrap(result)
    return jsonify({"message": result.message}), HTTPStatus.OK


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password() -> tuple:
    """Email a reset link when the address is registered.

    The response is the same whether or not the account exists.
    """
    payload = parse_json_request(request)
    errors: list[str] = []
    email = clean_email(payload, errors)
    _raise_if(errors)

    result = _flow().forgot_password(email)
    unwrap(result)
    return jsonify({"message": result.message}), HTTPStatus.OK


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password() -> tuple:
    payload = parse_json_request(request)
    errors: list[str] = []
    token = clean_string(payload, "token", errors)
    new_password = clean_string(
        payload, "new_password", errors, min_length=PASSWORD_MIN_LENGTH, strip=False
    )
    _raise_if(errors)

    result = _flow().reset_password(token, new_password)
    unwrap(result)
    return jsonify({"message": result.message}), HTTPStatus.OK


@auth_bp.route("/me", methods=["GET"])
@session_required
def me() -> tuple:
    """Return the profile of the authenticated user."""
    user = unwrap(_flow().current_user(current_identity()))
    return jsonify({"user": user.to_dict()}), HTTPStatus.OK
