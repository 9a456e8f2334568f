"""
"My pending reviews": mockups waiting on the current user.

For one user:
    1. every (project, stage) the user reviews, within the organization
    2. grouped by project
    3. per project, progress rows in review at one of those stages
    4. the matching mockups
    5. stage name / color from the project's workflow

Dashboard data, not authoritative state: a project that fails to resolve
is logged and skipped, and the request still succeeds with the rest.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from aiproval.core.progress import IN_REVIEW
from aiproval.models import db
from aiproval.models.mockup import Mockup, MockupStageProgress, UserStageApproval
from aiproval.models.project import Project
from aiproval.services.reviewer_service import stages_for_user
from aiproval.services.workflow_service import resolve_project_workflow

logger = logging.getLogger(__name__)

UNKNOWN_STAGE_NAME = "Unknown"
UNKNOWN_STAGE_COLOR = "gray"


def _stage_metadata(project: Project) -> dict:
    """order → Stage for the project's workflow; empty when it cannot be resolved."""
    if project.workflow_id is None:
        return {}
    _, stages = resolve_project_workflow(project)
    return {s.order: s for s in stages}


def _pending_for_project(org_id: int, project_id: int, stage_orders: set[int], user_id: str):
    project = db.session.get(Project, project_id)
    if project is None or project.organization_id != org_id:
        return None

    rows = db.session.execute(
        select(MockupStageProgress, Mockup)
        .join(Mockup, Mockup.id == MockupStageProgress.mockup_id)
        .where(
            MockupStageProgress.project_id == project.id,
            MockupStageProgress.status == IN_REVIEW,
            MockupStageProgress.stage_order.in_(sorted(stage_orders)),
            Mockup.organization_id == org_id,
            Mockup.project_id == project.id,
        )
        .order_by(Mockup.updated_at.desc(), Mockup.id.desc())
    ).all()
    if not rows:
        return None

    decided = set(db.session.execute(
        select(UserStageApproval.mockup_id, UserStageApproval.stage_order).where(
            UserStageApproval.project_id == project.id,
            UserStageApproval.user_id == user_id,
        )
    ).all())

    try:
        stage_meta = _stage_metadata(project)
    except Exception:
        # Stage metadata is enrichment only.
        logger.warning("Stage metadata unavailable", exc_info=True,
                       extra={"org_id": org_id, "project_id": project.id})
        stage_meta = {}

    pending = []
    for progress, mockup in rows:
        stage = stage_meta.get(progress.stage_order)
        pending.append({
            "mockup": mockup.to_dict(),
            "stage_order": progress.stage_order,
            "stage_name": stage.name if stage else UNKNOWN_STAGE_NAME,
            "stage_color": stage.color if stage else UNKNOWN_STAGE_COLOR,
            "stage_progress": progress.to_dict(),
            "has_decided": (mockup.id, progress.stage_order) in decided,
        })
    return {"project": project.to_dict(), "pending_mockups": pending}


def my_stage_reviews(org_id: int, user_id: str) -> dict:
    """Mockups in review at a stage the user reviews, grouped by project."""
    assignments = stages_for_user(org_id, user_id)

    projects = []
    for project_id in sorted(assignments):
        try:
            entry = _pending_for_project(org_id, project_id, assignments[project_id], user_id)
        except Exception as exc:
            if isinstance(exc, SQLAlchemyError):
                db.session.rollback()
            logger.warning(
                "Skipping project in pending reviews: %s", exc,
                extra={"org_id": org_id, "project_id": project_id, "user_id": user_id},
            )
            continue
        if entry is not None:
            projects.append(entry)

    return {
        "projects": projects,
        "total_pending": sum(len(p["pending_mockups"]) for p in projects),
    }
