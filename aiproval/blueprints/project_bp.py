"""
Project blueprint: projects and their stage reviewers.

Projects:
  GET    /api/v1/projects                          list (?status=)
  POST   /api/v1/projects                          create
  GET    /api/v1/projects/<id>                     detail with workflow
  PATCH  /api/v1/projects/<id>                     update (creator or admin)
  DELETE /api/v1/projects/<id>                     delete, mockups unassigned (creator or admin)

Stage reviewers:
  GET    /api/v1/projects/<id>/reviewers           grouped by stage
  POST   /api/v1/projects/<id>/reviewers           add (admin)
  DELETE /api/v1/projects/<id>/reviewers?reviewer_id=<rid>   remove (admin)
  DELETE /api/v1/projects/<id>/reviewers/<rid>     remove (admin)
"""

from flask import Blueprint, request

from aiproval.auth import current_principal, require_admin, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.core.exceptions import ValidationError
from aiproval.services import project_service, reviewer_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body, require_fields

project_bp = Blueprint("project_bp", __name__, url_prefix="/api/v1")
register_error_handlers(project_bp)


# ═════════════════════════════════════════════════════════════════════════
# Projects
# ═════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects", methods=["GET"])
@require_auth
def list_projects():
    projects = project_service.list_projects(
        org_id=current_principal().org_id, status=request.args.get("status") or None,
    )
    return api_success({"projects": projects, "total": len(projects)})


@project_bp.route("/projects", methods=["POST"])
@require_auth
def create_project():
    principal = current_principal()
    project = project_service.create_project(
        org_id=principal.org_id, user_id=principal.user_id, data=json_body(),
    )
    return api_success({"project": project_service.project_detail(project)}, status=201)


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
@require_auth
def get_project(project_id):
    project = project_service.get_project(org_id=current_principal().org_id, project_id=project_id)
    return api_success({"project": project_service.project_detail(project)})


@project_bp.route("/projects/<int:project_id>", methods=["PATCH"])
@require_auth
def update_project(project_id):
    principal = current_principal()
    project = project_service.update_project(
        org_id=principal.org_id, project_id=project_id, principal=principal, data=json_body(),
    )
    return api_success({"project": project_service.project_detail(project)})


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@require_auth
def delete_project(project_id):
    principal = current_principal()
    result = project_service.delete_project(
        org_id=principal.org_id, project_id=project_id, principal=principal,
    )
    return api_success(result)


# ═════════════════════════════════════════════════════════════════════════
# Stage reviewers
# ═════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects/<int:project_id>/reviewers", methods=["GET"])
@require_auth
def list_reviewers(project_id):
    stages = reviewer_service.list_reviewers_by_stage(current_principal().org_id, project_id)
    return api_success({"stages": stages})


@project_bp.route("/projects/<int:project_id>/reviewers", methods=["POST"])
@require_admin
def add_reviewer(project_id):
    principal = current_principal()
    data = json_body()
    require_fields(data, ["stage_order", "user_id", "user_name"])
    reviewer = reviewer_service.add_reviewer(
        principal.org_id,
        project_id,
        data.get("stage_order"),
        data.get("user_id"),
        data.get("user_name"),
        user_image_url=data.get("user_image_url"),
        added_by=principal.user_id,
    )
    return api_success({"reviewer": reviewer.to_dict()}, status=201)


@project_bp.route("/projects/<int:project_id>/reviewers", methods=["DELETE"])
@require_admin
def remove_reviewer_by_query(project_id):
    reviewer_id = request.args.get("reviewer_id", type=int)
    if reviewer_id is None:
        raise ValidationError("reviewer_id is required")
    reviewer_service.remove_reviewer(current_principal().org_id, reviewer_id, project_id)
    return api_success({"id": reviewer_id, "deleted": True})


@project_bp.route("/projects/<int:project_id>/reviewers/<int:reviewer_id>", methods=["DELETE"])
@require_admin
def remove_reviewer(project_id, reviewer_id):
    reviewer_service.remove_reviewer(current_principal().org_id, reviewer_id, project_id)
    return api_success({"id": reviewer_id, "deleted": True})
