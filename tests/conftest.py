from __future__ import annotations

import io

import pytest

from api import create_app
from utils.media import MediaHost, MediaUploadError

STRONG_PASSWORD = "Aa1!aaaa"


class FakeMediaHost(MediaHost):
    """Keeps uploads in memory; fail=True simulates an unreachable host,
    fail_folders rejects uploads into the named folders only."""

    def __init__(self):
        self.uploads: list[tuple[str, str, bytes]] = []
        self.fail = False
        self.fail_folders: set[str] = set()

    def upload(self, file, folder):
        if self.fail or folder in self.fail_folders:
            raise MediaUploadError("media host unavailable")
        content = file.read()
        url = f"https://media.test/{folder}/{len(self.uploads)}-{file.filename}"
        self.uploads.append((folder, file.filename, content))
        return url


@pytest.fixture
def media() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture
def app(tmp_path, media):
    app = create_app(
        "testing",
        overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'accounts.db'}"},
        media_host=media,
    )
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    # Cookies are passed explicitly in tests; no implicit cookie jar
    return app.test_client(use_cookies=False)


def image(name: str = "avatar.png", content: bytes = b"\x89PNG fake") -> tuple[io.BytesIO, str]:
    return io.BytesIO(content), name


def register(client, username="alice", email="alice@example.com", full_name="Alice Liddell",
             password=STRONG_PASSWORD, avatar=True, cover_image=False):
    data = {"username": username, "email": email, "fullName": full_name, "password": password}
    if avatar:
        data["avatar"] = image()
    if cover_image:
        data["coverImage"] = image("cover.jpg", b"jpeg bytes")
    return client.post("/api/v1/users/register", data=data, content_type="multipart/form-data")


def login(client, password=STRONG_PASSWORD, **identifier):
    identifier = identifier or {"username": "alice"}
    return client.post("/api/v1/users/login", json={**identifier, "password": password})


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    """A registered and logged-in user: returns the login response data."""
    assert register(client).status_code == 201
    resp = login(client)
    assert resp.status_code == 200
    return resp.get_json()["data"]
