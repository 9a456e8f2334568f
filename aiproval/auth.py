"""
Authentication & authorization decorators.

Identity and organization membership belong to the external identity
provider; by the time a view runs, ``middleware/jwt_auth.py`` and
``middleware/tenant_context.py`` have resolved the principal into ``g``.

Usage:
    @workflow_bp.route("/workflows", methods=["POST"])
    @require_admin
    def create_workflow(): ...

    principal = current_principal()
    principal.user_id, principal.org_id, principal.is_admin

Role hierarchy: admin > member > client
"""

import functools
import logging
from dataclasses import dataclass

from flask import g, request

from aiproval.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
INTERNAL_ROLES = {"admin", "member"}


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as resolved from the access token."""

    user_id: str
    org_id: int
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def is_internal(self) -> bool:
        return self.role in INTERNAL_ROLES

    @property
    def display_name(self) -> str:
        return self.name or "Unknown User"


def current_principal() -> Principal | None:
    user_id = getattr(g, "jwt_user_id", None)
    org = getattr(g, "organization", None)
    if not user_id or org is None:
        return None
    return Principal(
        user_id=user_id,
        org_id=org.id,
        role=getattr(g, "jwt_role", None) or "member",
        name=getattr(g, "jwt_user_name", None),
    )


def require_auth(f):
    """
    Decorator: require an authenticated user inside an organization.

    401 when there is no valid token, 403 when the token carries no organization.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not getattr(g, "jwt_user_id", None):
            return api_error(E.UNAUTHORIZED, "Authentication required")
        if getattr(g, "organization", None) is None:
            return api_error(E.FORBIDDEN, "Please select an organization")
        return f(*args, **kwargs)
    return decorated


def require_admin(f):
    """Decorator: require an org admin (implies require_auth)."""
    @functools.wraps(f)
    @require_auth
    def decorated(*args, **kwargs):
        if getattr(g, "jwt_role", None) != ADMIN_ROLE:
            logger.warning(
                "Access denied: role '%s' tried to access admin endpoint %s",
                getattr(g, "jwt_role", None), request.path,
                extra={"user_id": g.jwt_user_id, "org_id": g.jwt_org_id},
            )
            return api_error(E.FORBIDDEN, "Admin access required")
        return f(*args, **kwargs)
    return decorated
