"""
Aiproval
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'aiproval_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default=None):
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False
    EXPOSE_ERROR_DETAILS = True

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # Auth (tokens are minted by the identity provider; HS256 shared secret)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", "900"))

    # Rate limiting (Redis in production, memory for dev)
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = True
    PUBLIC_RATE_LIMIT = os.getenv("PUBLIC_RATE_LIMIT", "60/minute")
    API_RATE_LIMIT = os.getenv("API_RATE_LIMIT", "300/minute")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Request guards
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MB

    # Public share links
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")
    SHARE_TOKEN_ISSUER = "aiproval"
    SHARE_TOKEN_AUDIENCE = "public-share"
    SHARE_DEFAULT_EXPIRES_DAYS = 7
    SHARE_MAX_EXPIRES_DAYS = 365
    BCRYPT_ROUNDS = 12

    # Public reviewer sessions
    PUBLIC_SESSION_STORE = os.getenv("PUBLIC_SESSION_STORE", "cookie")  # cookie | header
    PUBLIC_SESSION_COOKIE = "aiproval_public_session"
    PUBLIC_SESSION_HEADER = "X-Public-Session"
    PUBLIC_SESSION_DAYS = 30
    PUBLIC_SESSION_KEY = os.getenv("PUBLIC_SESSION_KEY")
    SESSION_COOKIE_SECURE = False

    # AI summaries (feature is "unavailable" without a key)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    AI_SUMMARY_MODEL = os.getenv("AI_SUMMARY_MODEL", "gpt-4o-mini")
    AI_REQUEST_TIMEOUT = int(os.getenv("AI_REQUEST_TIMEOUT", "30"))
    AI_MAX_DOCUMENT_CHARS = 20_000

    # Outbound notifications (optional)
    SLACK_WEBHOOK_URL = os.getenv("SLACK_WEBHOOK_URL")
    SLACK_TIMEOUT = 5


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret"
    RATELIMIT_ENABLED = False
    BCRYPT_ROUNDS = 4
    OPENAI_API_KEY = ""
    SLACK_WEBHOOK_URL = None


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    EXPOSE_ERROR_DETAILS = False
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production
    SESSION_COOKIE_SECURE = True

    # Override engine options with PostgreSQL statement timeout
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
