from __future__ import annotations

import secrets

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import DBStorage, RefreshTokenStore, IdentityStore
from services import TokenIssuer, TokenRotator
from utils.security import Signer, TokenConfig, RefreshTokenGenerator

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Token Rotation API",
        "version": "1.0.0",
        "description": "Issues access/refresh token pairs and rotates refresh tokens.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
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

# One CSPRNG per process, shared by every issuer
_system_random = secrets.SystemRandom()


def init_token_engine(app: Flask, storage: DBStorage) -> None:
    """Build the token engine from app config and attach it to app.extensions."""
    token_config = TokenConfig.from_mapping(app.config)
    signer = Signer(token_config)
    refresh_store = RefreshTokenStore(storage)
    identity = IdentityStore(storage)
    issuer = TokenIssuer(
        signer,
        refresh_store,
        token_config,
        generate_refresh_token=RefreshTokenGenerator(_system_random),
    )
    rotator = TokenRotator(signer, refresh_store, issuer, find_principal=identity.find_by_id)

    app.extensions["storage"] = storage
    app.extensions["signer"] = signer
    app.extensions["refresh_token_store"] = refresh_store
    app.extensions["identity_store"] = identity
    app.extensions["token_issuer"] = issuer
    app.extensions["token_rotator"] = rotator


def create_app(config_name: str | None = None, config_overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `config_overrides` is applied on top of the selected config class.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelopes
    register_error_handlers(app)

    storage = DBStorage(
        app.config["DATABASE_URL"],
        timeout=app.config["STORE_TIMEOUT_SECONDS"],
        echo=app.config.get("SQL_ECHO", False),
    )
    storage.reload()
    init_token_engine(app, storage)

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Token Rotation API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
