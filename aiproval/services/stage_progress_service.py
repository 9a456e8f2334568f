"""
Stage Progress Service: moves a mockup through its workflow stages.

Lifecycle:
    initialize   every stage gets a row; stage 1 in_review, the rest
                 not_started; mockup status in_review
    approve      one reviewer decision; when approvals_received reaches
                 approvals_required the stage is approved and the next
                 stage enters review (or the mockup becomes approved)
    changes      a reviewer rejects the stage with notes; the stage and
                 the mockup stay changes_requested until review is
                 requested again, which re-initializes every stage
    final        the project owner (or an org admin) signs off after every
                 stage is approved

Design decisions:
    - One decision per (mockup, stage, reviewer). The unique constraint on
      user_stage_approvals is authoritative; a pre-check gives the friendly
      message and the IntegrityError path covers concurrent requests.
    - approvals_received never exceeds approvals_required.
    - More than one stage in review is an invariant violation and raises
      InvalidStateError instead of picking one.
    - Notifications and activity are written in the same transaction;
      Slack relay runs after commit and never fails the request.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from aiproval.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    ValidationError,
)
from aiproval.core.progress import (
    APPROVED,
    CHANGES_REQUESTED,
    IN_REVIEW,
    NOT_STARTED,
    aggregate,
    group_approvals,
)
from aiproval.models import db
from aiproval.models.base import utcnow
from aiproval.models.mockup import Mockup, MockupStageProgress, UserStageApproval
from aiproval.services.activity_service import log_activity
from aiproval.services.notification_service import NotificationService, mockup_link
from aiproval.services.reviewer_service import is_stage_reviewer, reviewer_user_ids
from aiproval.services.workflow_service import resolve_project_workflow
from aiproval.utils.helpers import clean_str, get_scoped_or_404

logger = logging.getLogger(__name__)

NO_WORKFLOW_MESSAGE = "Mockup is not assigned to a project with a workflow"
DUPLICATE_DECISION_MESSAGE = "You have already submitted a decision for this stage"


# ── Private helpers ────────────────────────────────────────────────────────────


def _load(org_id: int, mockup_id: int):
    """Return (mockup, project, stages) or raise when there is no workflow."""
    mockup = get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")
    project = mockup.project
    if project is None or project.workflow_id is None:
        raise ValidationError(NO_WORKFLOW_MESSAGE)
    _, stages = resolve_project_workflow(project)
    return mockup, project, stages


def _in_review_row(mockup: Mockup) -> MockupStageProgress | None:
    rows = [r for r in mockup.progress if r.status == IN_REVIEW]
    if len(rows) > 1:
        raise InvalidStateError(
            "More than one stage is in review",
            details={"mockup_id": mockup.id, "stages_in_review": [r.stage_order for r in rows]},
        )
    return rows[0] if rows else None


def _reviewing_row(mockup: Mockup, stage_order: int | None) -> MockupStageProgress:
    row = _in_review_row(mockup)
    if stage_order is not None and (row is None or row.stage_order != stage_order):
        raise ValidationError(f"Stage {stage_order} is not currently in review")
    if row is None:
        raise ValidationError("No stage is currently in review")
    return row


def _ensure_reviewer(project_id: int, stage_order: int, user_id: str) -> None:
    if not is_stage_reviewer(project_id, stage_order, user_id):
        raise ForbiddenError("You are not a reviewer for this stage")


def _ensure_no_decision(mockup_id: int, stage_order: int, user_id: str) -> None:
    existing = db.session.execute(
        select(UserStageApproval.id).where(
            UserStageApproval.mockup_id == mockup_id,
            UserStageApproval.stage_order == stage_order,
            UserStageApproval.user_id == user_id,
        )
    ).first()
    if existing is not None:
        raise ConflictError(
            "UserStageApproval", "mockup_id,stage_order,user_id",
            f"{mockup_id},{stage_order},{user_id}", message=DUPLICATE_DECISION_MESSAGE,
        )


def _commit_decision(mockup_id: int, stage_order: int, user_id: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(
            "UserStageApproval", "mockup_id,stage_order,user_id",
            f"{mockup_id},{stage_order},{user_id}", message=DUPLICATE_DECISION_MESSAGE,
        ) from exc


def _notify_stage_reviewers(mockup, project, stage, actor_id):
    NotificationService.notify_users(
        reviewer_user_ids(project.id, stage.order),
        exclude=actor_id,
        org_id=mockup.organization_id,
        type="approval_request",
        title=f"Review requested: {mockup.name}",
        message=f"\"{mockup.name}\" is ready for your review at stage {stage.order} ({stage.name}).",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=project.id,
        metadata={"stage_order": stage.order, "stage_name": stage.name},
    )


def _progress_summary(mockup, stages) -> dict:
    return aggregate(stages, mockup.progress, mockup.approvals)


# ── Initialization ─────────────────────────────────────────────────────────────


def clear_progress(mockup: Mockup) -> None:
    """Remove every progress row and reviewer decision of a mockup (no commit)."""
    mockup.progress.clear()
    mockup.approvals.clear()
    db.session.flush()


def reset_to_draft(mockup: Mockup) -> None:
    """Drop a mockup out of review entirely (no commit)."""
    clear_progress(mockup)
    mockup.status = "draft"
    mockup.clear_final_approval()


def initialize_progress(mockup: Mockup, project, actor_id: str | None = None) -> list[MockupStageProgress]:
    """(Re)start the workflow for ``mockup`` under ``project``. Caller commits.

    Stage 1 enters review and its reviewers are notified.
    """
    _, stages = resolve_project_workflow(project)
    if mockup.id is None:
        db.session.add(mockup)
        db.session.flush()
    # Old rows must be gone before new ones hit the (mockup, stage) unique constraint.
    clear_progress(mockup)

    for stage in stages:
        mockup.progress.append(MockupStageProgress(
            project_id=project.id,
            stage_order=stage.order,
            status=IN_REVIEW if stage.order == 1 else NOT_STARTED,
            approvals_required=stage.approvals_required,
            approvals_received=0,
        ))
    mockup.status = "in_review"
    mockup.clear_final_approval()

    _notify_stage_reviewers(mockup, project, stages.first, actor_id)
    log_activity(mockup.id, "review_requested", actor_id, {
        "project_id": project.id, "stage_order": 1, "stage_name": stages.first.name,
    })
    logger.info("Stage progress initialized (%d stages)", len(stages),
                extra={"org_id": mockup.organization_id, "mockup_id": mockup.id,
                       "project_id": project.id})
    return list(mockup.progress)


def request_review(org_id: int, mockup_id: int, principal) -> dict:
    """Start (or restart after changes were requested) the review of a mockup."""
    mockup, project, stages = _load(org_id, mockup_id)
    if not (principal.is_admin or mockup.created_by in (None, principal.user_id)):
        raise ForbiddenError("Only the mockup creator or an admin can request review")

    initialize_progress(mockup, project, actor_id=principal.user_id)
    db.session.commit()
    NotificationService.relay_to_slack(
        org_id, "review_requested",
        f"Review requested for \"{mockup.name}\" ({stages.first.name})",
    )
    return _progress_summary(mockup, stages)


# ── Reviewer decisions ─────────────────────────────────────────────────────────


def record_approval(org_id: int, mockup_id: int, principal, notes: str | None = None,
                    stage_order: int | None = None, user_image_url: str | None = None) -> dict:
    """Record one reviewer's approval of the stage currently in review.

    Returns:
        {message, stage_order, stage_complete, all_stages_complete,
         advanced_to, progress}
    """
    mockup, project, stages = _load(org_id, mockup_id)
    row = _reviewing_row(mockup, stage_order)
    order = row.stage_order
    _ensure_reviewer(project.id, order, principal.user_id)
    _ensure_no_decision(mockup.id, order, principal.user_id)

    mockup.approvals.append(UserStageApproval(
        project_id=project.id,
        stage_order=order,
        user_id=principal.user_id,
        user_name=principal.display_name,
        user_image_url=clean_str(user_image_url, 500),
        decision="approve",
        notes=clean_str(notes),
    ))
    row.approvals_received = min(row.approvals_received + 1, row.approvals_required)

    stage = stages.get(order)
    stage_name = stage.name if stage else f"Stage {order}"
    advanced_to = None
    all_complete = False
    stage_complete = row.approvals_received >= row.approvals_required

    if stage_complete:
        row.status = APPROVED
        row.reviewed_by = principal.user_id
        row.reviewed_at = utcnow()
        next_stage = stages.next_after(order)
        if next_stage is not None:
            next_row = next((r for r in mockup.progress if r.stage_order == next_stage.order), None)
            if next_row is None:
                next_row = MockupStageProgress(
                    project_id=project.id,
                    stage_order=next_stage.order,
                    approvals_required=next_stage.approvals_required,
                    approvals_received=0,
                )
                mockup.progress.append(next_row)
            next_row.status = IN_REVIEW
            advanced_to = next_stage.to_dict()
            message = f"Stage complete! Advanced to {next_stage.name}"
            _notify_stage_reviewers(mockup, project, next_stage, principal.user_id)
        else:
            all_complete = True
            mockup.status = "approved"
            message = "All stages complete! Pending final approval from project owner"
            NotificationService.notify(
                org_id=org_id,
                user_id=project.created_by,
                type="final_approval",
                title=f"Ready for final approval: {mockup.name}",
                message=f"Every stage of \"{mockup.name}\" has been approved.",
                link_url=mockup_link(mockup.id),
                mockup_id=mockup.id,
                project_id=project.id,
            )
    else:
        message = (
            f"Approval recorded. {row.approvals_received} of "
            f"{row.approvals_required} reviewers approved"
        )

    NotificationService.notify_users(
        [mockup.created_by],
        exclude=principal.user_id,
        org_id=org_id,
        type="stage_progress" if stage_complete else "approval_received",
        title=f"{principal.display_name} approved {mockup.name}",
        message=message,
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=project.id,
        metadata={"stage_order": order, "stage_name": stage_name},
    )
    log_activity(mockup.id, "stage_approved", principal.user_id, {
        "stage_order": order,
        "stage_name": stage_name,
        "approvals_received": row.approvals_received,
        "approvals_required": row.approvals_required,
        "notes": clean_str(notes),
    })
    _commit_decision(mockup.id, order, principal.user_id)

    logger.info("Stage %d approval recorded (%d/%d)", order,
                row.approvals_received, row.approvals_required,
                extra={"org_id": org_id, "mockup_id": mockup.id, "user_id": principal.user_id})
    if stage_complete:
        NotificationService.relay_to_slack(org_id, "stage_approved", f"\"{mockup.name}\": {message}")

    return {
        "message": message,
        "stage_order": order,
        "stage_complete": stage_complete,
        "all_stages_complete": all_complete,
        "advanced_to": advanced_to,
        "progress": _progress_summary(mockup, stages),
    }


def request_changes(org_id: int, mockup_id: int, stage_order: int | None, principal,
                    notes: str | None) -> dict:
    """Reject the stage in review. Notes are mandatory."""
    notes = clean_str(notes)
    if not notes:
        raise ValidationError("Notes are required when requesting changes")

    mockup, project, stages = _load(org_id, mockup_id)
    row = _reviewing_row(mockup, stage_order)
    order = row.stage_order
    _ensure_reviewer(project.id, order, principal.user_id)
    _ensure_no_decision(mockup.id, order, principal.user_id)

    mockup.approvals.append(UserStageApproval(
        project_id=project.id,
        stage_order=order,
        user_id=principal.user_id,
        user_name=principal.display_name,
        decision="request_changes",
        notes=notes,
    ))
    row.status = CHANGES_REQUESTED
    row.reviewed_by = principal.user_id
    row.reviewed_at = utcnow()
    row.notes = notes
    mockup.status = "changes_requested"

    stage = stages.get(order)
    stage_name = stage.name if stage else f"Stage {order}"
    NotificationService.notify_users(
        [mockup.created_by],
        exclude=principal.user_id,
        org_id=org_id,
        type="changes_requested",
        title=f"Changes requested on {mockup.name}",
        message=f"{principal.display_name} requested changes at {stage_name}: {notes}",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=project.id,
        metadata={"stage_order": order, "stage_name": stage_name},
    )
    log_activity(mockup.id, "changes_requested", principal.user_id, {
        "stage_order": order, "stage_name": stage_name, "notes": notes,
    })
    _commit_decision(mockup.id, order, principal.user_id)

    logger.info("Changes requested at stage %d", order,
                extra={"org_id": org_id, "mockup_id": mockup.id, "user_id": principal.user_id})
    NotificationService.relay_to_slack(
        org_id, "changes_requested", f"Changes requested on \"{mockup.name}\" ({stage_name})",
    )
    return {
        "message": "Changes requested",
        "stage_order": order,
        "progress": _progress_summary(mockup, stages),
    }


def final_approve(org_id: int, mockup_id: int, principal, notes: str | None = None) -> Mockup:
    """Project owner's sign-off once every stage is approved."""
    mockup, project, stages = _load(org_id, mockup_id)
    if not (principal.is_admin or project.created_by == principal.user_id):
        raise ForbiddenError("Only the project owner or an admin can give final approval")

    rows = {r.stage_order: r for r in mockup.progress}
    if not all(rows.get(s.order) is not None and rows[s.order].status == APPROVED for s in stages):
        raise ValidationError("All stages must be approved before final approval")
    if mockup.final_approved_at is not None:
        raise ConflictError("Mockup", "final_approved_at", str(mockup.id),
                            message="Mockup already has final approval")

    mockup.final_approved_by = principal.user_id
    mockup.final_approved_at = utcnow()
    mockup.final_approval_notes = clean_str(notes)
    mockup.status = "approved"

    NotificationService.notify_users(
        [mockup.created_by],
        exclude=principal.user_id,
        org_id=org_id,
        type="final_approval",
        title=f"{mockup.name} received final approval",
        message=clean_str(notes) or f"{principal.display_name} gave final approval.",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=project.id,
    )
    log_activity(mockup.id, "final_approved", principal.user_id, {"notes": clean_str(notes)})
    db.session.commit()

    logger.info("Final approval given", extra={"org_id": org_id, "mockup_id": mockup.id,
                                               "user_id": principal.user_id})
    NotificationService.relay_to_slack(org_id, "final_approved", f"\"{mockup.name}\" received final approval")
    return mockup


# ── Queries ────────────────────────────────────────────────────────────────────


def get_progress(org_id: int, mockup_id: int) -> dict:
    """Aggregated progress plus the raw rows; ``has_workflow`` false when there is none."""
    mockup = get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")
    project = mockup.project
    if project is None or project.workflow_id is None:
        return {
            "mockup_id": mockup.id,
            "has_workflow": False,
            "current_stage": None,
            "overall_status": NOT_STARTED,
            "per_stage": [],
            "rows": [],
        }
    workflow, stages = resolve_project_workflow(project)
    summary = _progress_summary(mockup, stages)
    summary.update({
        "mockup_id": mockup.id,
        "has_workflow": True,
        "workflow": {"id": workflow.id, "name": workflow.name, "stages": stages.to_list()},
        "rows": [r.to_dict() for r in mockup.progress],
        "final_approved": mockup.final_approved_at is not None,
    })
    return summary


def list_approvals(org_id: int, mockup_id: int) -> list[dict]:
    """User decisions grouped by stage: [{stage_order, approvals: [...]}]."""
    mockup = get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")
    grouped = group_approvals(mockup.approvals)
    return [
        {"stage_order": order, "approvals": [a.to_dict() for a in grouped[order]]}
        for order in sorted(grouped)
    ]
