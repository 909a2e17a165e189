"""
Environment-aware configuration.
Everything is read from the environment (and .env when present) so the same
image runs in dev, CI and production.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_JWT_SECRET = "dev-secret-change-me"


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///records.db")
    DB_POOL_TIMEOUT = _int_env("DB_POOL_TIMEOUT", 10)
    DB_ECHO = False

    # Access tokens are signed JWTs; refresh tokens are opaque random values
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "records-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "records-api-clients")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=_int_env("ACCESS_TOKEN_EXPIRES_SECONDS", 15 * 60))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=_int_env("REFRESH_TOKEN_EXPIRES_SECONDS", 7 * 24 * 3600))

    # Password hashing runs on a dedicated pool
    HASH_WORKERS = _int_env("HASH_WORKERS", 4)
    HASH_TIMEOUT_SECONDS = _int_env("HASH_TIMEOUT_SECONDS", 10)
    ARGON2_TIME_COST = _int_env("ARGON2_TIME_COST", 3)
    ARGON2_MEMORY_COST = _int_env("ARGON2_MEMORY_COST", 65536)
    ARGON2_PARALLELISM = _int_env("ARGON2_PARALLELISM", 4)

    # Side effects (audit, cache invalidation, notifications)
    EVENT_QUEUE_SIZE = _int_env("EVENT_QUEUE_SIZE", 1000)
    EVENT_WORKERS = _int_env("EVENT_WORKERS", 1)

    # Invited users get a generated password; only echo it back outside production
    EXPOSE_TEMP_PASSWORD = False


class DevelopmentConfig(BaseConfig):
    APP_ENV = "development"
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    EXPOSE_TEMP_PASSWORD = True


class TestingConfig(BaseConfig):
    APP_ENV = "testing"
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-secret-key-for-testing-only-0123456789"
    # Cheap hashing keeps the suite fast
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8
    ARGON2_PARALLELISM = 1
    HASH_WORKERS = 2
    EXPOSE_TEMP_PASSWORD = True
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    APP_ENV = "production"
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
