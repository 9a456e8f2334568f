"""
JWT Auth Middleware: Parses the identity provider's JWT, sets g.jwt_*.

The middleware never blocks a request on its own; it only resolves the
principal. Routes opt into enforcement with ``@require_auth`` /
``@require_admin`` from ``aiproval.auth``.

    Authorization: Bearer <token>  →  g.jwt_user_id, g.jwt_org_id,
                                      g.jwt_role, g.jwt_user_name
"""

import logging

import jwt as pyjwt
from flask import g, request

from aiproval.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/public/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_org_id = None
        g.jwt_role = None
        g.jwt_user_name = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token", extra={"request_id": getattr(g, "request_id", None)})
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected access token: %s", exc,
                        extra={"request_id": getattr(g, "request_id", None)})
            return

        g.jwt_user_id = payload.get("sub")
        g.jwt_org_id = payload.get("org_id")
        g.jwt_role = payload.get("role") or "member"
        g.jwt_user_name = payload.get("name")
