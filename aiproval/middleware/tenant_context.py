"""
Tenant Context Middleware: Enforces organization isolation on API requests.

When a JWT-authenticated user makes a request:
  1. g.jwt_org_id is already set by jwt_auth middleware
  2. This middleware verifies the organization exists and is active
  3. Sets g.organization for easy access to the Organization instance
  4. Every downstream query filters by that organization's id

Requests without an org claim are not blocked here; ``require_auth``
rejects them on protected routes.

Chain order:
  jwt_auth.py  →  tenant_context.py  →  route handler
"""

import logging

from flask import g, request

from aiproval.models import db
from aiproval.models.organization import Organization
from aiproval.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.organization = None

        if not request.path.startswith("/api/v1/"):
            return None

        org_id = getattr(g, "jwt_org_id", None)
        if org_id is None:
            return None

        org = db.session.get(Organization, org_id)
        if org is None:
            logger.warning("JWT org_id %s not found in DB", org_id,
                           extra={"org_id": org_id, "event_type": "org_not_found"})
            return api_error(E.FORBIDDEN, "Organization not found")

        if not org.is_active:
            logger.warning("JWT org_id %s is deactivated", org_id,
                           extra={"org_id": org_id, "event_type": "org_deactivated"})
            return api_error(E.FORBIDDEN, "Organization is deactivated")

        g.organization = org
        return None

    logger.debug("Tenant context middleware installed")
