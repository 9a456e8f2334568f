"""
Reviewer Service: who may decide on which stage of which project.

Business rules:
    - A reviewer is registered per (project, stage_order, user).
    - The stage must exist in the project's workflow.
    - The (project, stage, user) triple is unique; the database constraint
      decides, and its IntegrityError becomes a ConflictError.
    - Removal is scoped to the project named in the request: a reviewer id
      from another project is reported as not found and left untouched.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from aiproval.core.exceptions import ConflictError, NotFoundError, ValidationError
from aiproval.models import db
from aiproval.models.project import Project, StageReviewer
from aiproval.services.workflow_service import resolve_project_workflow
from aiproval.utils.helpers import clean_str, get_scoped_or_404

logger = logging.getLogger(__name__)


def _parse_stage_order(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("stage_order must be a positive integer")
    try:
        order = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("stage_order must be a positive integer") from exc
    if order < 1 or (isinstance(value, float) and value != order):
        raise ValidationError("stage_order must be a positive integer")
    return order


def add_reviewer(org_id: int, project_id: int, stage_order, user_id: str, user_name: str,
                 user_image_url: str | None = None, added_by: str | None = None) -> StageReviewer:
    """Register ``user_id`` as a reviewer of one stage. Returns the new row."""
    project = get_scoped_or_404(Project, project_id, org_id, label="Project")
    _, stages = resolve_project_workflow(project)

    order = _parse_stage_order(stage_order)
    if not stages.has(order):
        raise ValidationError(f"Stage {order} does not exist in workflow")

    user_id = clean_str(user_id)
    user_name = clean_str(user_name, 200)
    if not user_id or not user_name:
        raise ValidationError("Missing required fields: user_id, user_name")

    reviewer = StageReviewer(
        project_id=project.id,
        stage_order=order,
        user_id=user_id,
        user_name=user_name,
        user_image_url=clean_str(user_image_url, 500),
        added_by=added_by,
    )
    db.session.add(reviewer)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(
            "StageReviewer", "project_id,stage_order,user_id", f"{project.id},{order},{user_id}",
            message="User is already a reviewer for this stage",
        ) from exc

    logger.info("Reviewer %s added to stage %d", user_id, order,
                extra={"org_id": org_id, "project_id": project.id, "user_id": added_by})
    return reviewer


def remove_reviewer(org_id: int, reviewer_id, project_id: int) -> None:
    project = get_scoped_or_404(Project, project_id, org_id, label="Project")
    reviewer = db.session.get(StageReviewer, reviewer_id) if reviewer_id is not None else None
    if reviewer is None or reviewer.project_id != project.id:
        raise NotFoundError(resource="Reviewer", resource_id=reviewer_id, org_id=org_id)
    db.session.delete(reviewer)
    db.session.commit()
    logger.info("Reviewer %s removed", reviewer_id,
                extra={"org_id": org_id, "project_id": project.id})


def reviewers_for_project(project_id: int) -> list[StageReviewer]:
    return db.session.execute(
        select(StageReviewer)
        .where(StageReviewer.project_id == project_id)
        .order_by(StageReviewer.stage_order.asc(), StageReviewer.created_at.asc(), StageReviewer.id.asc())
    ).scalars().all()


def reviewer_user_ids(project_id: int, stage_order: int) -> list[str]:
    return list(db.session.execute(
        select(StageReviewer.user_id).where(
            StageReviewer.project_id == project_id,
            StageReviewer.stage_order == stage_order,
        )
    ).scalars())


def is_stage_reviewer(project_id: int, stage_order: int, user_id: str) -> bool:
    return db.session.execute(
        select(StageReviewer.id).where(
            StageReviewer.project_id == project_id,
            StageReviewer.stage_order == stage_order,
            StageReviewer.user_id == user_id,
        )
    ).first() is not None


def is_project_reviewer(project_id: int, user_id: str) -> bool:
    return db.session.execute(
        select(StageReviewer.id).where(
            StageReviewer.project_id == project_id,
            StageReviewer.user_id == user_id,
        ).limit(1)
    ).first() is not None


def list_reviewers_by_stage(org_id: int, project_id: int) -> list[dict]:
    """Reviewers grouped by stage: [{stage_order, reviewers: [...]}], stage ascending."""
    project = get_scoped_or_404(Project, project_id, org_id, label="Project")
    grouped: dict[int, list[dict]] = defaultdict(list)
    for r in reviewers_for_project(project.id):
        grouped[r.stage_order].append(r.to_dict())
    return [{"stage_order": order, "reviewers": grouped[order]} for order in sorted(grouped)]


def stages_for_user(org_id: int, user_id: str) -> dict[int, set[int]]:
    """Map of project_id → stage orders the user reviews, within one organization."""
    rows = db.session.execute(
        select(StageReviewer.project_id, StageReviewer.stage_order)
        .join(Project, Project.id == StageReviewer.project_id)
        .where(Project.organization_id == org_id, StageReviewer.user_id == user_id)
    ).all()
    result: dict[int, set[int]] = defaultdict(set)
    for project_id, order in rows:
        result[project_id].add(order)
    return dict(result)
