"""
Share link management (authenticated).

  POST   /api/v1/mockups/<id>/share             create the mockup's share link
  GET    /api/v1/mockups/<id>/share             current link, state and URL
  DELETE /api/v1/mockups/<id>/share             revoke
  GET    /api/v1/mockups/<id>/share/analytics   views, comments, decisions
"""

from flask import Blueprint

from aiproval.auth import current_principal, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.services import share_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body

share_bp = Blueprint("share_bp", __name__, url_prefix="/api/v1")
register_error_handlers(share_bp)


@share_bp.route("/mockups/<int:mockup_id>/share", methods=["POST"])
@require_auth
def create_share_link(mockup_id):
    principal = current_principal()
    link = share_service.create_share_link(principal.org_id, mockup_id, principal, json_body())
    return api_success({"share_link": share_service.share_link_dict(link)}, status=201)


@share_bp.route("/mockups/<int:mockup_id>/share", methods=["GET"])
@require_auth
def get_share_link(mockup_id):
    link = share_service.get_share_link(current_principal().org_id, mockup_id)
    return api_success({"share_link": share_service.share_link_dict(link)})


@share_bp.route("/mockups/<int:mockup_id>/share", methods=["DELETE"])
@require_auth
def revoke_share_link(mockup_id):
    principal = current_principal()
    share_service.revoke_share_link(principal.org_id, mockup_id, principal)
    return api_success({"mockup_id": mockup_id, "revoked": True})


@share_bp.route("/mockups/<int:mockup_id>/share/analytics", methods=["GET"])
@require_auth
def share_analytics(mockup_id):
    return api_success(share_service.share_analytics(current_principal().org_id, mockup_id))
