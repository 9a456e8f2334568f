"""Project CRUD service with strict organization ownership checks."""

from __future__ import annotations

import logging
import re

from sqlalchemy import delete, func, select

from aiproval.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from aiproval.models import db
from aiproval.models.client import Client
from aiproval.models.mockup import Mockup, MockupStageProgress, UserStageApproval
from aiproval.models.project import (
    DEFAULT_PROJECT_COLOR,
    PROJECT_NAME_MAX,
    PROJECT_STATUSES,
    Project,
    StageReviewer,
)
from aiproval.models.workflow import Workflow
from aiproval.services import stage_progress_service
from aiproval.utils.helpers import clean_str, get_scoped_or_404

logger = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _validated_name(value) -> str:
    name = clean_str(value)
    if not name:
        raise ValidationError("Project name is required", details={"name": "required"})
    if len(name) > PROJECT_NAME_MAX:
        raise ValidationError(f"Project name must be less than {PROJECT_NAME_MAX} characters")
    return name


def _validated_status(value) -> str:
    if value not in PROJECT_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(sorted(PROJECT_STATUSES))}",
        )
    return value


def _validated_color(value) -> str:
    if value in (None, ""):
        return DEFAULT_PROJECT_COLOR
    if not isinstance(value, str) or not _COLOR_RE.match(value):
        raise ValidationError("Color must be a hex value like #3B82F6")
    return value.upper()


def _validated_workflow_id(org_id: int, workflow_id, current_id: int | None = None) -> int | None:
    if workflow_id is None:
        return None
    wf = get_scoped_or_404(Workflow, workflow_id, org_id, label="Workflow")
    if wf.is_archived and wf.id != current_id:
        raise ValidationError("Archived workflows cannot be assigned to projects")
    return wf.id


def _validated_client_id(org_id: int, client_id) -> int | None:
    if client_id is None:
        return None
    return get_scoped_or_404(Client, client_id, org_id, label="Client").id


def _mockup_counts(project_ids: list[int]) -> dict[int, int]:
    if not project_ids:
        return {}
    rows = db.session.execute(
        select(Mockup.project_id, func.count(Mockup.id))
        .where(Mockup.project_id.in_(project_ids))
        .group_by(Mockup.project_id)
    ).all()
    return {pid: count for pid, count in rows}


def ensure_can_manage(project: Project, principal) -> None:
    """Creator or org admin, else ForbiddenError."""
    if principal.is_admin or project.created_by == principal.user_id:
        return
    raise ForbiddenError("Only the project creator or an admin can modify this project")


# ── Queries ──────────────────────────────────────────────────────────────


def list_projects(*, org_id: int, status: str | None = None) -> list[dict]:
    stmt = select(Project).where(Project.organization_id == org_id)
    if status:
        stmt = stmt.where(Project.status == _validated_status(status))
    projects = db.session.execute(
        stmt.order_by(Project.created_at.desc(), Project.id.desc())
    ).scalars().all()
    counts = _mockup_counts([p.id for p in projects])
    result = []
    for p in projects:
        d = p.to_dict()
        d["mockup_count"] = counts.get(p.id, 0)
        result.append(d)
    return result


def get_project(*, org_id: int, project_id: int) -> Project:
    return get_scoped_or_404(Project, project_id, org_id, label="Project")


def project_detail(project: Project) -> dict:
    d = project.to_dict(include_workflow=True)
    d["mockup_count"] = _mockup_counts([project.id]).get(project.id, 0)
    return d


# ── Commands ─────────────────────────────────────────────────────────────


def create_project(*, org_id: int, user_id: str, data: dict) -> Project:
    project = Project(
        organization_id=org_id,
        name=_validated_name(data.get("name")),
        description=clean_str(data.get("description")),
        status=_validated_status(data.get("status") or "active"),
        color=_validated_color(data.get("color")),
        client_id=_validated_client_id(org_id, data.get("client_id")),
        workflow_id=_validated_workflow_id(org_id, data.get("workflow_id")),
        created_by=user_id,
    )
    db.session.add(project)
    db.session.commit()
    logger.info("Project created: %s", project.id,
                extra={"org_id": org_id, "project_id": project.id, "user_id": user_id})
    return project


def update_project(*, org_id: int, project_id: int, principal, data: dict) -> Project:
    project = get_project(org_id=org_id, project_id=project_id)
    ensure_can_manage(project, principal)

    if "name" in data:
        project.name = _validated_name(data.get("name"))
    if "description" in data:
        project.description = clean_str(data.get("description"))
    if "status" in data:
        project.status = _validated_status(data.get("status"))
    if "color" in data:
        project.color = _validated_color(data.get("color"))
    if "client_id" in data:
        project.client_id = _validated_client_id(org_id, data.get("client_id"))
    if "workflow_id" in data:
        workflow_id = _validated_workflow_id(
            org_id, data.get("workflow_id"), current_id=project.workflow_id,
        )
        if workflow_id != project.workflow_id:
            _switch_workflow(project, workflow_id, principal.user_id)
    db.session.commit()
    # Reload the relationship so callers see the newly assigned workflow.
    db.session.refresh(project)
    return project


def _switch_workflow(project: Project, workflow_id: int | None, actor_id: str) -> None:
    """Re-point ``project`` at another workflow (or none). Caller commits.

    Stage reviewers were registered against the old stage orders and are
    removed. Every mockup in the project restarts review under the new
    stages, or falls back to draft when the project has no workflow left.
    """
    previous_id = project.workflow_id
    db.session.execute(delete(StageReviewer).where(StageReviewer.project_id == project.id))
    project.workflow_id = workflow_id
    db.session.flush()
    db.session.expire(project, ["workflow", "reviewers"])

    mockups = db.session.execute(
        select(Mockup).where(Mockup.project_id == project.id)
    ).scalars().all()
    for mockup in mockups:
        if workflow_id is None:
            stage_progress_service.reset_to_draft(mockup)
        else:
            stage_progress_service.initialize_progress(mockup, project, actor_id=actor_id)
    logger.info("Project workflow changed %s -> %s (%d mockups restarted)",
                previous_id, workflow_id, len(mockups),
                extra={"org_id": project.organization_id, "project_id": project.id})


def delete_project(*, org_id: int, project_id: int, principal) -> dict:
    """Delete a project. Its mockups survive, unassigned and without stage progress."""
    project = get_project(org_id=org_id, project_id=project_id)
    ensure_can_manage(project, principal)

    mockups = db.session.execute(
        select(Mockup).where(Mockup.project_id == project.id)
    ).scalars().all()
    db.session.execute(delete(UserStageApproval).where(UserStageApproval.project_id == project.id))
    db.session.execute(delete(MockupStageProgress).where(MockupStageProgress.project_id == project.id))
    for mockup in mockups:
        db.session.expire(mockup, ["progress", "approvals"])
        mockup.project_id = None
        mockup.status = "draft"
        mockup.clear_final_approval()

    db.session.delete(project)
    db.session.commit()
    logger.info("Project deleted: %s (%d mockups unassigned)", project_id, len(mockups),
                extra={"org_id": org_id, "project_id": project_id})
    return {"id": project_id, "unassigned_mockups": len(mockups)}


def get_project_or_target_404(org_id: int, project_id) -> Project:
    """Lookup used by mockup move: reports 'Target project not found'."""
    project = db.session.get(Project, project_id) if project_id is not None else None
    if project is None or project.organization_id != org_id:
        raise NotFoundError(resource="Target project", resource_id=project_id, org_id=org_id)
    return project
