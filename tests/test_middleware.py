from datetime import datetime, timedelta, timezone

from flask import g

from conftest import bearer
from models.session_store import SessionStore
from utils.decorators import RequestContext, authenticate, extract_token
from utils.result import Err, Ok

CURRENT_USER_URL = "/api/v1/users/current-user"


def test_header_token_is_accepted(client, alice):
    resp = client.get(CURRENT_USER_URL, headers=bearer(alice["accessToken"]))
    assert resp.status_code == 200


def test_cookie_token_is_accepted(client, alice):
    resp = client.get(CURRENT_USER_URL, headers={"Cookie": f"accessToken={alice['accessToken']}"})
    assert resp.status_code == 200


def test_cookie_wins_over_header(client, alice):
    headers = {"Cookie": "accessToken=garbage", **bearer(alice["accessToken"])}
    assert client.get(CURRENT_USER_URL, headers=headers).status_code == 401


def test_missing_token(client):
    resp = client.get(CURRENT_USER_URL)
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Unauthorized request"


def test_non_bearer_header_is_ignored(client, alice):
    resp = client.get(CURRENT_USER_URL, headers={"Authorization": f"Token {alice['accessToken']}"})
    assert resp.status_code == 401


def test_refresh_token_is_not_an_access_token(client, alice):
    assert client.get(CURRENT_USER_URL, headers=bearer(alice["refreshToken"])).status_code == 401


def test_expired_access_token(client, app, alice):
    issuer = app.extensions["token_issuer"]
    expired = issuer.issue_access_token(alice["user"]["id"], now=datetime.now(timezone.utc) - timedelta(hours=1))
    resp = client.get(CURRENT_USER_URL, headers=bearer(expired))
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired access token"


def test_token_for_deleted_user(client, app):
    token = app.extensions["token_issuer"].issue_access_token("no-such-user")
    resp = client.get(CURRENT_USER_URL, headers=bearer(token))
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired access token"


def test_access_token_outlives_logout_until_expiry(client, app, alice):
    client.post("/api/v1/users/logout", headers=bearer(alice["accessToken"]))
    # access tokens are stateless: still accepted, but no refresh is possible
    assert client.get(CURRENT_USER_URL, headers=bearer(alice["accessToken"])).status_code == 200
    with app.app_context():
        assert SessionStore(app.extensions["storage"]).get_current_refresh_token(alice["user"]["id"]) is None


def test_stages_short_circuit(app):
    calls = []

    def never(ctx):
        calls.append("never")
        return Ok(ctx)

    with app.test_request_context("/"):
        result = authenticate([extract_token, never])
    assert isinstance(result, Err)
    assert result.error.status_code == 401
    assert calls == []


def test_stages_resolve_identity(app, alice):
    with app.test_request_context("/", headers=bearer(alice["accessToken"])):
        result = authenticate()
        assert isinstance(result, Ok)
        ctx = result.value
        assert isinstance(ctx, RequestContext)
        assert ctx.user.id == alice["user"]["id"]
        assert ctx.claims["type"] == "access"
        assert not hasattr(g, "current_user")
