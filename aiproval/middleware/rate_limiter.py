"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in aiproval/__init__.py with no default limits; this module
applies granular limits per route category:

    - public share endpoints:  PUBLIC_RATE_LIMIT per client IP
    - AI summaries:            10/minute per organization (LLM calls are expensive)
    - authenticated API:       API_RATE_LIMIT per organization
    - health check:            exempt

Usage:
    from aiproval.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

AI_RATE_LIMIT = "10/minute"

AUTHENTICATED_BLUEPRINTS = (
    "workflow_bp",
    "client_bp",
    "project_bp",
    "mockup_bp",
    "approval_bp",
    "share_bp",
    "notification_bp",
)


def client_ip() -> str:
    """Real client IP, honouring X-Forwarded-For from load balancers."""
    forwarded_for = flask_request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return flask_request.remote_addr or "unknown"


def org_rate_limit_key() -> str:
    """Dynamic rate limit key: organization if authenticated, else remote IP."""
    org_id = getattr(g, "jwt_org_id", None)
    if org_id:
        return f"org:{org_id}"
    return client_ip()


def init_rate_limits(app, limiter):
    """Apply rate limits to API blueprints. Disabled when RATELIMIT_ENABLED is off."""

    if not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled (RATELIMIT_ENABLED=False)")
        return

    bp = app.blueprints.get("public_bp")
    if bp:
        limiter.limit(app.config["PUBLIC_RATE_LIMIT"], key_func=client_ip)(bp)

    bp = app.blueprints.get("ai_bp")
    if bp:
        limiter.limit(AI_RATE_LIMIT, key_func=org_rate_limit_key)(bp)

    for bp_name in AUTHENTICATED_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(app.config["API_RATE_LIMIT"], key_func=org_rate_limit_key)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: public: %s, ai: %s, api: %s",
        app.config["PUBLIC_RATE_LIMIT"], AI_RATE_LIMIT, app.config["API_RATE_LIMIT"],
    )
