"""
Workflow blueprint: approval workflow definitions.

Endpoints:
  GET    /api/v1/workflows                 list (?include_archived=true)
  POST   /api/v1/workflows                 create (admin)
  GET    /api/v1/workflows/<id>            detail with counts
  PATCH  /api/v1/workflows/<id>            update (admin)
  DELETE /api/v1/workflows/<id>            delete, or archive when referenced (admin)

Service layer owns all business logic and commits.
"""

from flask import Blueprint, request

from aiproval.auth import current_principal, require_admin, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.services import workflow_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body, parse_bool

workflow_bp = Blueprint("workflow_bp", __name__, url_prefix="/api/v1")
register_error_handlers(workflow_bp)


@workflow_bp.route("/workflows", methods=["GET"])
@require_auth
def list_workflows():
    principal = current_principal()
    workflows = workflow_service.list_workflows(
        principal.org_id, include_archived=parse_bool(request.args.get("include_archived")),
    )
    return api_success({"workflows": workflows, "total": len(workflows)})


@workflow_bp.route("/workflows", methods=["POST"])
@require_admin
def create_workflow():
    principal = current_principal()
    wf = workflow_service.create_workflow(principal.org_id, principal.user_id, json_body())
    return api_success({"workflow": wf.to_dict(include_counts=True)}, status=201)


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["GET"])
@require_auth
def get_workflow(workflow_id):
    wf = workflow_service.get_workflow(current_principal().org_id, workflow_id)
    return api_success({"workflow": wf.to_dict(include_counts=True)})


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["PATCH"])
@require_admin
def update_workflow(workflow_id):
    wf = workflow_service.update_workflow(current_principal().org_id, workflow_id, json_body())
    return api_success({"workflow": wf.to_dict(include_counts=True)})


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["DELETE"])
@require_admin
def delete_workflow(workflow_id):
    return api_success(workflow_service.delete_workflow(current_principal().org_id, workflow_id))
