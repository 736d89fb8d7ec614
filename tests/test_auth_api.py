import io
import os

import api.auth
from models import storage
from models.user import User
from tests.conftest import login_user, register_user


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _set_cookies(response):
    return {c.split("=", 1)[0]: c for c in response.headers.getlist("Set-Cookie")}


def test_health(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "ok"


def test_bob_end_to_end(client, app):
    # register
    res = register_user(client)
    assert res.status_code == 201
    user = res.get_json()["data"]
    assert user["username"] == "bob"
    assert "password" not in user and "refreshToken" not in user

    # wrong password looks exactly like an unknown user
    wrong = login_user(client, username="bob", password="nope")
    missing = login_user(client, username="nobody")
    assert wrong.status_code == missing.status_code == 401
    assert wrong.get_json() == missing.get_json()
    assert "nope" not in wrong.get_data(as_text=True)

    # correct password
    res = login_user(client, username="bob")
    assert res.status_code == 200
    data = res.get_json()["data"]
    access, refresh = data["accessToken"], data["refreshToken"]
    with app.app_context():
        assert storage.get(User, user["id"]).refresh_token == refresh

    # rotate
    res = client.post("/api/v1/users/refresh-token", json={"refreshToken": refresh})
    assert res.status_code == 200
    new_pair = res.get_json()["data"]
    assert new_pair["refreshToken"] != refresh

    replay = client.post("/api/v1/users/refresh-token", json={"refreshToken": refresh})
    assert replay.status_code == 401
    assert replay.get_json()["message"] == "Refresh token is expired or used"


def test_register_validation_errors(client):
    res = register_user(client, fullName="   ")
    assert res.status_code == 400
    body = res.get_json()
    assert body["error"] == "VALIDATION_ERROR"
    assert "fullName" in body["details"]

    res = register_user(client, avatar=None)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Avatar file is required"


def test_register_conflict(client):
    assert register_user(client).status_code == 201
    res = register_user(client, username="BOB", email="new@example.com")
    assert res.status_code == 409
    assert res.get_json()["error"] == "CONFLICT"


def test_register_with_cover_image(client):
    res = register_user(client, coverImage=(io.BytesIO(b"cover"), "cover.jpg"))
    assert res.status_code == 201
    assert res.get_json()["data"]["coverImage"].startswith("https://media.test/")


def test_register_cleans_temp_dir(client, app, uploader):
    uploader.fail = True
    res = register_user(client, coverImage=(io.BytesIO(b"cover"), "cover.jpg"))
    assert res.status_code == 400
    tmp_dir = app.config["UPLOAD_TMP_DIR"]
    assert not os.path.isdir(tmp_dir) or os.listdir(tmp_dir) == []


def test_login_sets_http_only_cookies(client):
    register_user(client)
    res = login_user(client, email="bob@example.com")
    cookies = _set_cookies(res)
    for name in ("accessToken", "refreshToken"):
        assert name in cookies
        assert "HttpOnly" in cookies[name]
        assert "Secure" in cookies[name]
        assert "SameSite=Strict" in cookies[name]


def test_login_without_identifier(client):
    res = client.post("/api/v1/users/login", json={"password": "secret123"})
    assert res.status_code == 400


def test_current_user_via_header_and_cookie(client):
    register_user(client)
    access = login_user(client, username="bob").get_json()["data"]["accessToken"]

    res = client.get("/api/v1/users/current-user", headers=_bearer(access))
    assert res.status_code == 200
    assert res.get_json()["data"]["username"] == "bob"

    res = client.get("/api/v1/users/current-user", headers={"Cookie": f"accessToken={access}"})
    assert res.status_code == 200


def test_current_user_rejects_missing_or_bad_token(client):
    assert client.get("/api/v1/users/current-user").status_code == 401
    res = client.get("/api/v1/users/current-user", headers=_bearer("garbage"))
    assert res.status_code == 401
    assert "garbage" not in res.get_data(as_text=True)


def test_logout_then_refresh_fails(client):
    register_user(client)
    data = login_user(client, username="bob").get_json()["data"]

    res = client.post("/api/v1/users/logout", headers=_bearer(data["accessToken"]))
    assert res.status_code == 200
    cookies = _set_cookies(res)
    assert "accessToken" in cookies and "refreshToken" in cookies
    assert "Max-Age=0" in cookies["refreshToken"] or "Expires=Thu, 01 Jan 1970" in cookies["refreshToken"]

    res = client.post("/api/v1/users/refresh-token", json={"refreshToken": data["refreshToken"]})
    assert res.status_code == 401


def test_logout_requires_auth(client):
    assert client.post("/api/v1/users/logout").status_code == 401


def test_refresh_from_cookie(client):
    register_user(client)
    refresh = login_user(client, username="bob").get_json()["data"]["refreshToken"]
    res = client.post("/api/v1/users/refresh-token", headers={"Cookie": f"refreshToken={refresh}"})
    assert res.status_code == 200
    assert "refreshToken" in _set_cookies(res)


def test_refresh_without_token(client):
    res = client.post("/api/v1/users/refresh-token", json={})
    assert res.status_code == 401
    assert res.get_json() == {"error": "UNAUTHORIZED", "message": "Unauthorized request", "status": 401}


def test_refresh_with_non_object_json_body(client):
    for body in (["x"], "abc", 42, None):
        res = client.post("/api/v1/users/refresh-token", json=body)
        assert res.status_code == 401
        assert res.get_json()["error"] == "UNAUTHORIZED"


def test_login_with_non_object_json_body(client):
    res = client.post("/api/v1/users/login", json=["bob", "secret123"])
    assert res.status_code == 400


def test_register_cover_save_failure_discards_avatar(client, app, monkeypatch):
    real_save = api.auth.save_upload

    def save(file, tmp_dir):
        if file is not None and file.filename == "cover.jpg":
            raise OSError("disk full")
        return real_save(file, tmp_dir)

    monkeypatch.setattr(api.auth, "save_upload", save)
    res = register_user(client, coverImage=(io.BytesIO(b"cover"), "cover.jpg"))
    assert res.status_code == 500
    assert os.listdir(app.config["UPLOAD_TMP_DIR"]) == []
