"""
Development server: python -m api
Production runs create_app() under a WSGI server (gunicorn/uwsgi) instead.
"""
import logging
import os

from . import create_app, shutdown_app

logger = logging.getLogger("api")


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


def main() -> None:
    # APP_ENV picks the config class
    app = create_app()
    host = os.getenv("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    debug = _env_flag("FLASK_DEBUG", app.config.get("DEBUG", False))
    logger.info("Starting records API on %s:%s (env=%s)", host, port, app.config["APP_ENV"])
    try:
        app.run(host=host, port=port, debug=debug)
    finally:
        shutdown_app(app)


if __name__ == "__main__":
    main()
