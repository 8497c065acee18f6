from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import get_config, check_config
from .errors import register_error_handlers
from models import DBStorage
from utils.media import MediaHost, build_media_host
from utils.security import TokenIssuer

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "User Accounts API",
        "version": "1.0.0",
        "description": "Registration, login, token refresh and profile updates.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app.logger.setLevel(level)


def create_app(
    config_name: str | None = None,
    overrides: dict | None = None,
    media_host: MediaHost | None = None,
) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    The storage handle, token issuer and media host are built here and kept
    in app.extensions; nothing lives in module globals. `overrides` is applied
    on top of the selected config class (tests use it for DATABASE_URL), and
    `media_host` replaces the configured one.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    check_config(app.config)
    configure_logging(app)

    # Cross-Origin Resource Sharing; credentials so browsers send the session cookies
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions["storage"] = storage
    app.extensions["token_issuer"] = TokenIssuer.from_config(app.config)
    app.extensions["media_host"] = media_host or build_media_host(app.config)

    from .health import bp as health_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to User Accounts API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
