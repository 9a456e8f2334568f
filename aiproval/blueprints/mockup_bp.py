"""
Mockup blueprint: mockups, moves, duplicates, comments and activity.

  GET    /api/v1/mockups                       list (?project_id= | ?unassigned=true)
  POST   /api/v1/mockups                       create
  GET    /api/v1/mockups/<id>                  detail
  PATCH  /api/v1/mockups/<id>                  update name / image_url (creator)
  DELETE /api/v1/mockups/<id>                  delete (creator or admin)
  POST   /api/v1/mockups/<id>/move             {project_id | null}
  POST   /api/v1/mockups/<id>/duplicate        {name?}
  GET    /api/v1/mockups/<id>/comments
  POST   /api/v1/mockups/<id>/comments
  DELETE /api/v1/mockups/<id>/comments/<cid>
  GET    /api/v1/mockups/<id>/activity
"""

from flask import Blueprint, request

from aiproval.auth import current_principal, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.core.exceptions import ValidationError
from aiproval.services import mockup_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body, parse_bool

mockup_bp = Blueprint("mockup_bp", __name__, url_prefix="/api/v1")
register_error_handlers(mockup_bp)


@mockup_bp.route("/mockups", methods=["GET"])
@require_auth
def list_mockups():
    mockups = mockup_service.list_mockups(
        current_principal().org_id,
        project_id=request.args.get("project_id", type=int),
        unassigned=parse_bool(request.args.get("unassigned")),
    )
    return api_success({"mockups": [m.to_dict() for m in mockups], "total": len(mockups)})


@mockup_bp.route("/mockups", methods=["POST"])
@require_auth
def create_mockup():
    principal = current_principal()
    mockup = mockup_service.create_mockup(principal.org_id, principal, json_body())
    return api_success({"mockup": mockup.to_dict()}, status=201)


@mockup_bp.route("/mockups/<int:mockup_id>", methods=["GET"])
@require_auth
def get_mockup(mockup_id):
    mockup = mockup_service.get_mockup(current_principal().org_id, mockup_id)
    return api_success({"mockup": mockup.to_dict()})


@mockup_bp.route("/mockups/<int:mockup_id>", methods=["PATCH"])
@require_auth
def update_mockup(mockup_id):
    principal = current_principal()
    mockup = mockup_service.update_mockup(principal.org_id, mockup_id, principal, json_body())
    return api_success({"mockup": mockup.to_dict()})


@mockup_bp.route("/mockups/<int:mockup_id>", methods=["DELETE"])
@require_auth
def delete_mockup(mockup_id):
    principal = current_principal()
    mockup_service.delete_mockup(principal.org_id, mockup_id, principal)
    return api_success({"id": mockup_id, "deleted": True})


@mockup_bp.route("/mockups/<int:mockup_id>/move", methods=["POST"])
@require_auth
def move_mockup(mockup_id):
    principal = current_principal()
    data = json_body()
    if "project_id" not in data:
        raise ValidationError("Missing required fields: project_id")
    mockup = mockup_service.move_mockup(principal.org_id, mockup_id, principal, data["project_id"])
    return api_success({"mockup": mockup.to_dict()})


@mockup_bp.route("/mockups/<int:mockup_id>/duplicate", methods=["POST"])
@require_auth
def duplicate_mockup(mockup_id):
    principal = current_principal()
    copy = mockup_service.duplicate_mockup(
        principal.org_id, mockup_id, principal, name=json_body().get("name"),
    )
    return api_success({"mockup": copy.to_dict()}, status=201)


# ── Comments ──────────────────────────────────────────────────────────────────


@mockup_bp.route("/mockups/<int:mockup_id>/comments", methods=["GET"])
@require_auth
def list_comments(mockup_id):
    principal = current_principal()
    comments = mockup_service.list_comments(principal.org_id, mockup_id, principal)
    return api_success({"comments": [c.to_dict() for c in comments], "total": len(comments)})


@mockup_bp.route("/mockups/<int:mockup_id>/comments", methods=["POST"])
@require_auth
def add_comment(mockup_id):
    principal = current_principal()
    comment = mockup_service.add_comment(principal.org_id, mockup_id, principal, json_body())
    return api_success({"comment": comment.to_dict()}, status=201)


@mockup_bp.route("/mockups/<int:mockup_id>/comments/<int:comment_id>", methods=["DELETE"])
@require_auth
def delete_comment(mockup_id, comment_id):
    principal = current_principal()
    mockup_service.delete_comment(principal.org_id, mockup_id, comment_id, principal)
    return api_success({"id": comment_id, "deleted": True})


@mockup_bp.route("/mockups/<int:mockup_id>/activity", methods=["GET"])
@require_auth
def get_activity(mockup_id):
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    activity = mockup_service.get_activity(current_principal().org_id, mockup_id, limit=limit)
    return api_success({"activity": activity})
