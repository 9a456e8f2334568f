"""
Aiproval
Flask Application Factory.

Usage:
    from aiproval import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from werkzeug.exceptions import HTTPException

from aiproval.config import config
from aiproval.middleware.jwt_auth import init_jwt_middleware
from aiproval.middleware.logging_config import configure_logging
from aiproval.middleware.rate_limiter import init_rate_limits, org_rate_limit_key
from aiproval.middleware.security_headers import init_security_headers
from aiproval.middleware.tenant_context import init_tenant_context
from aiproval.middleware.timing import init_request_timing
from aiproval.models import db

logger = logging.getLogger(__name__)

MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=org_rate_limit_key,
    default_limits=[],                     # no global limit: applied per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
             supports_credentials=True)
    else:
        CORS(app)

    # ── Middleware (order matters: timing → jwt → tenant) ────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_tenant_context(app)
    init_security_headers(app)

    # ── Request guard (Content-Type) ─────────────────────────────────────
    @app.before_request
    def _guard_request():
        if request.method in MUTATING_METHODS and request.path.startswith("/api/"):
            content_type = request.content_type or ""
            if request.content_length and "json" not in content_type:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from aiproval.models import organization as _organization_models  # noqa: F401
    from aiproval.models import workflow as _workflow_models          # noqa: F401
    from aiproval.models import client as _client_models              # noqa: F401
    from aiproval.models import project as _project_models            # noqa: F401
    from aiproval.models import mockup as _mockup_models              # noqa: F401
    from aiproval.models import share as _share_models                # noqa: F401
    from aiproval.models import notification as _notification_models  # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from aiproval.blueprints import http_error_response
    from aiproval.blueprints.ai_bp import ai_bp
    from aiproval.blueprints.approval_bp import approval_bp
    from aiproval.blueprints.client_bp import client_bp
    from aiproval.blueprints.health_bp import health_bp
    from aiproval.blueprints.mockup_bp import mockup_bp
    from aiproval.blueprints.notification_bp import notification_bp
    from aiproval.blueprints.project_bp import project_bp
    from aiproval.blueprints.public_bp import public_bp
    from aiproval.blueprints.share_bp import share_bp
    from aiproval.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(client_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(mockup_bp)
    app.register_blueprint(approval_bp)
    app.register_blueprint(share_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(health_bp)

    # ── App-level error handlers (routing failures, guards, limiter) ─────
    @app.errorhandler(HTTPException)
    def _http_error(error):
        return http_error_response(error)

    @app.errorhandler(500)
    def _server_error(error):
        logger.error("500 error on %s", request.path, exc_info=True)
        return http_error_response(error)

    # ── Dev convenience: create tables without running migrations ────────
    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
