"""Avatar and profile update tests."""

from __future__ import annotations

from io import BytesIO

from flask.testing import FlaskClient
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.user import DEFAULT_AVATAR


def _upload_avatar(client: FlaskClient, headers, name="me.png", content=b"png bytes"):
    return client.put(
        "/users/update-avatar",
        data={"avatar": (BytesIO(content), name)},
        headers=headers,
        content_type="multipart/form-data",
    )


def test_update_avatar_replaces_previous_file(client: FlaskClient, auth_headers, tmp_path):
    _, headers = auth_headers("u1@x.com")
    uploads = tmp_path / "uploads"

    first = _upload_avatar(client, headers)
    assert first.status_code == 200
    first_path = first.get_json()["avatar"]
    assert first_path != DEFAULT_AVATAR
    assert first.get_json()["user"]["avatar"] == first_path
    assert (uploads / first_path.rsplit("/", 1)[-1]).exists()

    second = _upload_avatar(client, headers, name="new.jpg")
    assert second.status_code == 200
    second_path = second.get_json()["avatar"]
    assert (uploads / second_path.rsplit("/", 1)[-1]).exists()
    assert not (uploads / first_path.rsplit("/", 1)[-1]).exists()

    me = client.get("/auth/me", headers=headers)
    assert me.get_json()["user"]["avatar"] == second_path


def test_update_avatar_commit_failure_removes_new_file(
    app, client: FlaskClient, auth_headers, monkeypatch, tmp_path
):
    _, headers = auth_headers("u1@x.com")
    uploads = tmp_path / "uploads"
    kept = _upload_avatar(client, headers).get_json()["avatar"]

    def fail_commit():
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db.session, "commit", fail_commit)
    response = _upload_avatar(client, headers, name="new.jpg")
    monkeypatch.undo()

    assert response.status_code == 500
    assert [path.name for path in uploads.iterdir()] == [kept.rsplit("/", 1)[-1]]
    me = client.get("/auth/me", headers=headers)
    assert me.get_json()["user"]["avatar"] == kept


def test_update_avatar_validation(app, client: FlaskClient, auth_headers):
    _, headers = auth_headers("u1@x.com")
    app.config["MAX_AVATAR_SIZE"] = 10

    missing = client.put(
        "/users/update-avatar", data={}, headers=headers, content_type="multipart/form-data"
    )
    wrong_type = _upload_avatar(client, headers, name="doc.pdf", content=b"tiny")
    too_large = _upload_avatar(client, headers, content=b"x" * 11)

    assert missing.status_code == 400
    assert wrong_type.status_code == 400
    assert too_large.status_code == 400
    assert "maximum upload size" in too_large.get_json()["detail"]


def test_update_profile_changes_name_and_bio(client: FlaskClient, auth_headers):
    _, headers = auth_headers("u1@x.com")

    response = client.put(
        "/users/update-profile", json={"name": " Ann ", "bio": "hello there"}, headers=headers
    )

    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["name"] == "Ann"
    assert user["bio"] == "hello there"


def test_update_profile_rejects_empty_update(client: FlaskClient, auth_headers):
    _, headers = auth_headers("u1@x.com")

    empty = client.put("/users/update-profile", json={}, headers=headers)
    unrelated = client.put("/users/update-profile", json={"email": "new@x.com"}, headers=headers)
    blank_name = client.put("/users/update-profile", json={"name": "  "}, headers=headers)

    assert empty.status_code == 400
    assert "No profile fields" in empty.get_json()["detail"]
    assert unrelated.status_code == 400
    assert blank_name.status_code == 400
    assert "name must be a non-empty string" in blank_name.get_json()["errors"]


def test_profile_routes_require_session(client: FlaskClient):
    assert client.put("/users/update-profile", json={"name": "x"}).status_code == 401
    assert _upload_avatar(client, {}).status_code == 401
