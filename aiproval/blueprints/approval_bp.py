"""
Approval blueprint: staged review of mockups.

  POST /api/v1/mockups/<id>/request-review          start or restart review
  GET  /api/v1/mockups/<id>/stage-progress          aggregated progress + rows
  POST /api/v1/mockups/<id>/approve                 {notes?} approve current stage
  POST /api/v1/mockups/<id>/stage-progress/<order>  {action: approve|request_changes, notes}
  POST /api/v1/mockups/<id>/final-approve           {notes?} project owner sign-off
  GET  /api/v1/mockups/<id>/approvals               reviewer decisions by stage
  GET  /api/v1/reviews/my-stage-reviews             mockups waiting on the caller
"""

from flask import Blueprint

from aiproval.auth import current_principal, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.core.exceptions import ValidationError
from aiproval.services import review_service, stage_progress_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body

approval_bp = Blueprint("approval_bp", __name__, url_prefix="/api/v1")
register_error_handlers(approval_bp)

STAGE_ACTIONS = ("approve", "request_changes")


@approval_bp.route("/mockups/<int:mockup_id>/request-review", methods=["POST"])
@require_auth
def request_review(mockup_id):
    principal = current_principal()
    progress = stage_progress_service.request_review(principal.org_id, mockup_id, principal)
    return api_success({"message": "Review requested", "progress": progress})


@approval_bp.route("/mockups/<int:mockup_id>/stage-progress", methods=["GET"])
@require_auth
def get_stage_progress(mockup_id):
    return api_success(stage_progress_service.get_progress(current_principal().org_id, mockup_id))


@approval_bp.route("/mockups/<int:mockup_id>/approve", methods=["POST"])
@require_auth
def approve_current_stage(mockup_id):
    principal = current_principal()
    data = json_body()
    result = stage_progress_service.record_approval(
        principal.org_id, mockup_id, principal,
        notes=data.get("notes"), user_image_url=data.get("user_image_url"),
    )
    return api_success(result)


@approval_bp.route("/mockups/<int:mockup_id>/stage-progress/<int:stage_order>", methods=["POST"])
@require_auth
def decide_stage(mockup_id, stage_order):
    principal = current_principal()
    data = json_body()
    action = data.get("action")
    if action not in STAGE_ACTIONS:
        raise ValidationError("Action must be approve or request_changes")

    if action == "approve":
        result = stage_progress_service.record_approval(
            principal.org_id, mockup_id, principal,
            notes=data.get("notes"), stage_order=stage_order,
            user_image_url=data.get("user_image_url"),
        )
    else:
        result = stage_progress_service.request_changes(
            principal.org_id, mockup_id, stage_order, principal, data.get("notes"),
        )
    return api_success(result)


@approval_bp.route("/mockups/<int:mockup_id>/final-approve", methods=["POST"])
@require_auth
def final_approve(mockup_id):
    principal = current_principal()
    mockup = stage_progress_service.final_approve(
        principal.org_id, mockup_id, principal, notes=json_body().get("notes"),
    )
    return api_success({"message": "Final approval recorded", "mockup": mockup.to_dict()})


@approval_bp.route("/mockups/<int:mockup_id>/approvals", methods=["GET"])
@require_auth
def list_approvals(mockup_id):
    stages = stage_progress_service.list_approvals(current_principal().org_id, mockup_id)
    return api_success({"stages": stages})


@approval_bp.route("/reviews/my-stage-reviews", methods=["GET"])
@require_auth
def my_stage_reviews():
    principal = current_principal()
    return api_success(review_service.my_stage_reviews(principal.org_id, principal.user_id))
