import pytest

from api import create_app
from api.config import DevelopmentConfig, ProductionConfig, TestingConfig, check_config, get_config


def test_get_config_by_name():
    assert get_config("prod") is ProductionConfig
    assert get_config("testing") is TestingConfig
    assert get_config("dev") is DevelopmentConfig


def test_production_requires_secrets_from_environment():
    config = {"ENV_NAME": "production", "ACCESS_TOKEN_SECRET": None, "REFRESH_TOKEN_SECRET": None,
              "DATABASE_URL": None}
    with pytest.raises(RuntimeError, match="ACCESS_TOKEN_SECRET"):
        check_config(config)


def test_shared_secret_is_refused():
    with pytest.raises(RuntimeError):
        check_config({"ACCESS_TOKEN_SECRET": "same", "REFRESH_TOKEN_SECRET": "same"})


def test_create_app_refuses_shared_secret(tmp_path):
    with pytest.raises(RuntimeError):
        create_app(
            "testing",
            overrides={
                "DATABASE_URL": f"sqlite:///{tmp_path / 'x.db'}",
                "ACCESS_TOKEN_SECRET": "same",
                "REFRESH_TOKEN_SECRET": "same",
            },
        )


def test_default_token_lifetimes():
    assert TestingConfig.ACCESS_TOKEN_EXPIRES.total_seconds() == 900
    assert TestingConfig.REFRESH_TOKEN_EXPIRES.total_seconds() == 10 * 24 * 3600


def test_health_and_root(client):
    assert client.get("/api/v1/health").get_json()["status"] == "ok"
    assert client.get("/").status_code == 200


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/users/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "statusCode": 404, "message": resp.get_json()["message"],
                               "errors": []}
