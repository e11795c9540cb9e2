"""Tests covering registration, verification, login and password reset."""

from __future__ import annotations

import re
from datetime import datetime, timedelta

import pytest
from flask.testing import FlaskClient

from models import db
from models.user import User


def _register(client: FlaskClient, email="a@x.com", password="pw12345", name="Ann"):
    return client.post(
        "/auth/register", json={"email": email, "password": password, "name": name}
    )


def _otp_for(outbox, email: str) -> str:
    notification = outbox.last_to(email)
    assert notification is not None
    match = re.search(r"Your OTP code is: (\d{6})", notification.body)
    assert match
    return match.group(1)


def _wrong_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def test_register_verify_login_me_scenario(client: FlaskClient, outbox):
    response = _register(client)
    assert response.status_code == 201
    payload = response.get_json()
    assert payload["user"]["email"] == "a@x.com"
    assert payload["user"]["is_verified"] is False
    assert "password_hash" not in payload["user"]
    assert len(outbox.sent) == 1

    code = _otp_for(outbox, "a@x.com")

    wrong = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": _wrong_code(code)})
    assert wrong.status_code == 400

    verified = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})
    assert verified.status_code == 200
    assert verified.get_json()["user"]["is_verified"] is True
    assert verified.get_json()["access_token"]

    login = client.post("/auth/login", json={"email": "a@x.com", "password": "pw12345"})
    assert login.status_code == 200
    token = login.get_json()["access_token"]
    assert login.get_json()["user"]["name"] == "Ann"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["name"] == "Ann"
    assert me.get_json()["user"]["email"] == "a@x.com"


def test_login_before_verification_is_rejected(client: FlaskClient):
    _register(client)

    response = client.post("/auth/login", json={"email": "a@x.com", "password": "pw12345"})

    assert response.status_code == 403
    payload = response.get_json()
    assert payload["email"] == "a@x.com"
    assert payload["request_id"]


def test_register_duplicate_email_conflicts(client: FlaskClient):
    assert _register(client).status_code == 201

    response = _register(client, name="Other")

    assert response.status_code == 409


@pytest.mark.parametrize(
    "payload, expected_error",
    [
        ({"password": "pw12345", "name": "Ann"}, "email is required"),
        ({"email": "not-an-email", "password": "pw12345", "name": "Ann"}, "email must be a valid email"),
        ({"email": "a@x.com", "password": "123", "name": "Ann"}, "password must be at least 6 characters"),
        ({"email": "a@x.com", "password": "pw12345"}, "name is required"),
    ],
)
def test_register_validation_lists_field_errors(client: FlaskClient, outbox, payload, expected_error):
    response = client.post("/auth/register", json=payload)

    assert response.status_code == 400
    body = response.get_json()
    assert body["detail"] == "Validation failed"
    assert expected_error in body["errors"]
    assert outbox.sent == []


def test_expired_and_wrong_otp_fail_identically(app, client: FlaskClient, outbox):
    _register(client)
    code = _otp_for(outbox, "a@x.com")

    wrong = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": _wrong_code(code)})

    with app.app_context():
        user = User.query.filter_by(email="a@x.com").one()
        user.otp_expiry = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()

    expired = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})

    assert wrong.status_code == expired.status_code == 400
    assert wrong.get_json()["detail"] == expired.get_json()["detail"]


def test_verify_otp_unknown_and_already_verified(client: FlaskClient, make_user):
    missing = client.post("/auth/verify-otp", json={"email": "ghost@x.com", "otp": "123456"})
    assert missing.status_code == 404

    make_user("done@x.com")
    again = client.post("/auth/verify-otp", json={"email": "done@x.com", "otp": "123456"})
    assert again.status_code == 400
    assert "already verified" in again.get_json()["detail"]


def test_login_does_not_reveal_unknown_accounts(client: FlaskClient, make_user):
    make_user("real@x.com", "secret123")

    unknown = client.post("/auth/login", json={"email": "ghost@x.com", "password": "secret123"})
    wrong = client.post("/auth/login", json={"email": "real@x.com", "password": "wrong-pass"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.get_json()["detail"] == wrong.get_json()["detail"]


def test_resend_otp_cooldown(client: FlaskClient, outbox, cooldown_clock):
    _register(client)
    original = _otp_for(outbox, "a@x.com")

    first = client.post("/auth/resend-otp", json={"email": "a@x.com"})
    assert first.status_code == 200
    resent = _otp_for(outbox, "a@x.com")

    cooldown_clock.advance(20)
    second = client.post("/auth/resend-otp", json={"email": "a@x.com"})
    assert second.status_code == 429
    assert second.get_json()["retry_after"] == 40
    assert second.headers.get("Retry-After") == "40"

    cooldown_clock.advance(41)
    third = client.post("/auth/resend-otp", json={"email": "a@x.com"})
    assert third.status_code == 200
    latest = _otp_for(outbox, "a@x.com")
    assert len(outbox.sent) == 3

    for stale in {original, resent} - {latest}:
        response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": stale})
        assert response.status_code == 400

    ok = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": latest})
    assert ok.status_code == 200


def test_resend_otp_rejects_unknown_and_verified(client: FlaskClient, make_user):
    assert client.post("/auth/resend-otp", json={"email": "ghost@x.com"}).status_code == 404

    make_user("done@x.com")
    assert client.post("/auth/resend-otp", json={"email": "done@x.com"}).status_code == 400


def test_forgot_password_is_enumeration_safe(client: FlaskClient, outbox, make_user):
    make_user("real@x.com")

    known = client.post("/auth/forgot-password", json={"email": "real@x.com"})
    unknown = client.post("/auth/forgot-password", json={"email": "ghost@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()
    assert [n.to for n in outbox.sent] == ["real@x.com"]
    assert "https://app.example/reset-password/" in outbox.sent[0].body


def _reset_token_from(outbox, email: str) -> str:
    body = outbox.last_to(email).body
    match = re.search(r"/reset-password/([0-9a-f]+)", body)
    assert match
    return match.group(1)


def test_reset_password_swaps_credentials(client: FlaskClient, outbox, make_user):
    make_user("real@x.com", "old-secret")
    client.post("/auth/forgot-password", json={"email": "real@x.com"})
    token = _reset_token_from(outbox, "real@x.com")
    assert len(token) >= 40

    response = client.post(
        "/auth/reset-password", json={"token": token, "new_password": "new-secret"}
    )
    assert response.status_code == 200

    old = client.post("/auth/login", json={"email": "real@x.com", "password": "old-secret"})
    new = client.post("/auth/login", json={"email": "real@x.com", "password": "new-secret"})
    assert old.status_code == 401
    assert new.status_code == 200

    reused = client.post(
        "/auth/reset-password", json={"token": token, "new_password": "another-one"}
    )
    assert reused.status_code == 400


def test_reset_password_rejects_unknown_and_expired_tokens(app, client: FlaskClient, outbox, make_user):
    unknown = client.post(
        "/auth/reset-password", json={"token": "deadbeef", "new_password": "new-secret"}
    )
    assert unknown.status_code == 400

    make_user("real@x.com")
    client.post("/auth/forgot-password", json={"email": "real@x.com"})
    token = _reset_token_from(outbox, "real@x.com")
    with app.app_context():
        user = User.query.filter_by(email="real@x.com").one()
        user.reset_expiry = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

    expired = client.post(
        "/auth/reset-password", json={"token": token, "new_password": "new-secret"}
    )
    assert expired.status_code == 400
    assert expired.get_json()["detail"] == unknown.get_json()["detail"]


def test_me_returns_404_when_user_vanished(app, client: FlaskClient, auth_headers):
    user_id, headers = auth_headers("gone@x.com")
    with app.app_context():
        db.session.delete(db.session.get(User, user_id))
        db.session.commit()

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 404


def test_registration_mail_failure_is_opaque(app, client: FlaskClient, outbox):
    from services.notifications import NotificationError

    def _fail(notification):
        raise NotificationError("smtp down")

    outbox.send = _fail

    response = _register(client)

    assert response.status_code == 500
    assert response.get_json()["detail"] == "An unexpected error occurred."
    with app.app_context():
        assert User.query.filter_by(email="a@x.com").one().is_verified is False
