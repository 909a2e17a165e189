import logging

import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_JWT_SECRET, ProductionConfig, get_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from models.session_store import SessionStore
from services.auth import AuthService
from services.events import EventBus, audit_log_handler
from services.users import UserService
from utils.security import CredentialVerifier, WorkerPool
from utils.tokens import TokenCodec

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Business Records API",
        "version": "1.0.0",
        "description": "Tenant registration, authentication and team management for the business records application.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
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


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(config_name: str | None = None, config_overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Builds every collaborator once (storage, codec, pools, services) and hands
    them to each other explicitly; nothing is a module-level singleton.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app.config["LOG_LEVEL"])
    if issubclass(config_class, ProductionConfig) and app.config["JWT_SECRET"] == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = DBStorage(
        app.config["DATABASE_URL"],
        pool_timeout=app.config["DB_POOL_TIMEOUT"],
        echo=app.config.get("DB_ECHO", False),
    )
    storage.reload()

    pool = WorkerPool(app.config["HASH_WORKERS"], timeout=app.config["HASH_TIMEOUT_SECONDS"])
    verifier = CredentialVerifier.from_config(app.config, pool)
    codec = TokenCodec.from_config(app.config)
    sessions = SessionStore(storage)
    events = EventBus(maxsize=app.config["EVENT_QUEUE_SIZE"], workers=app.config["EVENT_WORKERS"])
    events.subscribe(EventBus.WILDCARD, audit_log_handler)

    app.extensions["storage"] = storage
    app.extensions["worker_pool"] = pool
    app.extensions["token_codec"] = codec
    app.extensions["session_store"] = sessions
    app.extensions["event_bus"] = events
    app.extensions["auth_service"] = AuthService(storage, sessions, verifier, codec, pool, events)
    app.extensions["user_service"] = UserService(storage, sessions, verifier, events)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.cli.command("purge-tokens")
    def purge_tokens():
        """Delete expired and revoked refresh tokens."""
        with storage.transaction():
            removed = sessions.purge()
        click.echo(f"Purged {removed} refresh tokens")

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the Business Records API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app


def shutdown_app(app: Flask) -> None:
    """Stop background workers and release database connections."""
    app.extensions["event_bus"].close()
    app.extensions["worker_pool"].shutdown(wait=False)
    app.extensions["storage"].dispose()
