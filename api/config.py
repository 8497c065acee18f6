"""
Environment-aware configuration.
Secrets, token lifetimes, database, media host and session policy flags all
come from the environment (.env is read when present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///user-accounts.db")
    SQL_ECHO = _env_bool("SQL_ECHO", "false")

    # Token signing: one secret per token class
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret-change-me")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "user-accounts-api")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", "864000")))

    # Session cookies are always httpOnly; Secure can only be relaxed explicitly
    AUTH_COOKIE_SECURE = _env_bool("AUTH_COOKIE_SECURE", "true")

    # Session policy
    REVOKE_ON_REFRESH_REUSE = _env_bool("REVOKE_ON_REFRESH_REUSE", "true")
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE = _env_bool("REVOKE_SESSIONS_ON_PASSWORD_CHANGE", "false")

    # Media host
    MEDIA_BACKEND = os.getenv("MEDIA_BACKEND", "local")
    MEDIA_ROOT = os.getenv("MEDIA_ROOT", os.path.join("public", "media"))
    MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")
    MEDIA_UPLOAD_URL = os.getenv("MEDIA_UPLOAD_URL")
    MEDIA_API_KEY = os.getenv("MEDIA_API_KEY")
    MEDIA_TIMEOUT_SECONDS = float(os.getenv("MEDIA_TIMEOUT_SECONDS", "30"))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))


class DevelopmentConfig(BaseConfig):
    ENV_NAME = "development"
    DEBUG = True


class TestingConfig(BaseConfig):
    ENV_NAME = "testing"
    TESTING = True
    DATABASE_URL = "sqlite:///:memory:"
    ACCESS_TOKEN_SECRET = "test-access-secret"
    REFRESH_TOKEN_SECRET = "test-refresh-secret"
    REVOKE_ON_REFRESH_REUSE = True
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE = False
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    ENV_NAME = "production"
    DEBUG = False
    # No fallbacks: must be supplied by the environment
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    DATABASE_URL = os.getenv("DATABASE_URL")


REQUIRED_IN_PRODUCTION = ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET", "DATABASE_URL")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def check_config(config) -> None:
    """Refuse to start with missing production settings or shared token secrets."""
    if config.get("ENV_NAME") == "production":
        missing = [key for key in REQUIRED_IN_PRODUCTION if not config.get(key)]
        if missing:
            raise RuntimeError(f"Missing required settings: {', '.join(missing)}")
    if config.get("ACCESS_TOKEN_SECRET") == config.get("REFRESH_TOKEN_SECRET"):
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
