"""
Shared fixtures.

Each test gets a fresh app on an in-memory SQLite database (create_app
rebuilds the engine) and a fake media uploader, so nothing leaves the
process. The HTTP client does not keep cookies: tests pass tokens
explicitly so "old" and "new" tokens never get mixed up by the cookie jar.
"""
from __future__ import annotations

import io
import os

import pytest

from api import create_app
from models import storage
from models.user_store import UserStore
from services.sessions import SessionService
from utils.uploader import MediaUploader


class FakeUploader(MediaUploader):
    """Pretends to push files to a media host; can be told to fail."""

    def __init__(self):
        self.fail = False
        self.uploaded = []

    def _push(self, local_path):
        if self.fail:
            raise ConnectionError("media host unreachable")
        name = os.path.basename(local_path)
        self.uploaded.append(name)
        return {"url": f"http://media.test/{name}", "secure_url": f"https://media.test/{name}"}


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["UPLOAD_TMP_DIR"] = str(tmp_path / "uploads")
    app.extensions["media_uploader"] = FakeUploader()
    yield app
    storage.close()


@pytest.fixture
def uploader(app):
    return app.extensions["media_uploader"]


@pytest.fixture
def client(app):
    return app.test_client(use_cookies=False)


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def store(ctx):
    return UserStore(storage)


@pytest.fixture
def service(store, uploader):
    return SessionService(store, uploader)


@pytest.fixture
def temp_file(tmp_path):
    """Factory for local files standing in for multipart uploads."""
    def make(name="avatar.png", content=b"\x89PNG fake"):
        path = tmp_path / name
        path.write_bytes(content)
        return str(path)
    return make


def register_form(**overrides):
    data = {
        "fullName": "Bob Builder",
        "email": "bob@example.com",
        "username": "bob",
        "password": "secret123",
        "avatar": (io.BytesIO(b"\x89PNG avatar"), "avatar.png"),
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


def register_user(client, **overrides):
    return client.post(
        "/api/v1/users/register", data=register_form(**overrides), content_type="multipart/form-data"
    )


def login_user(client, **body):
    body.setdefault("password", "secret123")
    return client.post("/api/v1/users/login", json=body)
