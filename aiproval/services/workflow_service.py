"""
Workflow Service: approval workflow definitions.

Business rules:
    - Stage lists are validated once through WorkflowStages.from_raw and
      stored as its JSON form.
    - At most one default workflow per organization; setting a new default
      clears the previous one in the same transaction.
    - A workflow referenced by any project is archived instead of deleted.
    - Stages cannot be replaced once a mockup has progress under a project
      using the workflow (progress rows would point at stages that no
      longer mean the same thing).
    - Project.workflow is normalized to a single Workflow or None here,
      before business logic sees it.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update

from aiproval.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from aiproval.core.stages import WorkflowStages
from aiproval.models import db
from aiproval.models.mockup import MockupStageProgress
from aiproval.models.project import Project
from aiproval.models.workflow import Workflow
from aiproval.utils.helpers import clean_str, get_scoped_or_404, parse_bool

logger = logging.getLogger(__name__)

WORKFLOW_NAME_MAX = 200


def _validated_name(value, *, message="Workflow name is required") -> str:
    name = clean_str(value)
    if not name:
        raise ValidationError(message, details={"name": "required"})
    if len(name) > WORKFLOW_NAME_MAX:
        raise ValidationError(f"Workflow name must be less than {WORKFLOW_NAME_MAX} characters")
    return name


def _clear_other_defaults(org_id: int, keep_id: int | None) -> None:
    stmt = (
        update(Workflow)
        .where(Workflow.organization_id == org_id, Workflow.is_default.is_(True))
        .values(is_default=False)
    )
    if keep_id is not None:
        stmt = stmt.where(Workflow.id != keep_id)
    db.session.execute(stmt)


def _project_count(workflow_id: int) -> int:
    return db.session.execute(
        select(func.count(Project.id)).where(Project.workflow_id == workflow_id)
    ).scalar_one()


def workflow_has_progress(workflow_id: int) -> bool:
    """True when any mockup has entered a stage under a project using this workflow."""
    stmt = (
        select(MockupStageProgress.id)
        .join(Project, Project.id == MockupStageProgress.project_id)
        .where(Project.workflow_id == workflow_id)
        .limit(1)
    )
    return db.session.execute(stmt).first() is not None


# ── Queries ──────────────────────────────────────────────────────────────


def list_workflows(org_id: int, include_archived: bool = False) -> list[dict]:
    stmt = select(Workflow).where(Workflow.organization_id == org_id)
    if not include_archived:
        stmt = stmt.where(Workflow.is_archived.is_(False))
    stmt = stmt.order_by(Workflow.is_default.desc(), Workflow.created_at.desc(), Workflow.id.desc())
    return [w.to_dict(include_counts=True) for w in db.session.execute(stmt).scalars()]


def get_workflow(org_id: int, workflow_id: int) -> Workflow:
    return get_scoped_or_404(Workflow, workflow_id, org_id, label="Workflow")


def resolve_project_workflow(project: Project) -> tuple[Workflow, WorkflowStages]:
    """Return the project's workflow and its validated stages.

    Raises NotFoundError("Workflow") when the project has none.
    """
    workflow = project.workflow
    if isinstance(workflow, (list, tuple)):
        # Relationship must be many-to-one; a collection means a mapping error.
        raise TypeError(f"Project {project.id} workflow relation returned a collection")
    if workflow is None:
        raise NotFoundError(resource="Workflow", org_id=project.organization_id)
    if workflow.organization_id != project.organization_id:
        raise InvalidStateError(
            f"Project {project.id} points at a workflow of another organization",
            details={"project_id": project.id, "workflow_id": workflow.id},
        )
    return workflow, workflow.stage_list


# ── Commands ─────────────────────────────────────────────────────────────


def create_workflow(org_id: int, user_id: str, data: dict) -> Workflow:
    """Create a workflow. Body: {name, description?, stages: [...], is_default?}."""
    name = _validated_name(data.get("name"))
    stages = WorkflowStages.from_raw(data.get("stages"))
    is_default = parse_bool(data.get("is_default"))

    wf = Workflow(
        organization_id=org_id,
        name=name,
        description=clean_str(data.get("description")),
        stages=stages.to_list(),
        is_default=is_default,
        created_by=user_id,
    )
    if is_default:
        _clear_other_defaults(org_id, keep_id=None)
    db.session.add(wf)
    db.session.commit()
    logger.info("Workflow created: %s (%d stages)", wf.name, len(stages),
                extra={"org_id": org_id, "user_id": user_id})
    return wf


def update_workflow(org_id: int, workflow_id: int, data: dict) -> Workflow:
    wf = get_workflow(org_id, workflow_id)

    if "name" in data:
        wf.name = _validated_name(data.get("name"), message="Workflow name cannot be empty")
    if "description" in data:
        wf.description = clean_str(data.get("description"))
    if "stages" in data:
        stages = WorkflowStages.from_raw(data.get("stages"))
        if stages.to_list() != list(wf.stages or []) and workflow_has_progress(wf.id):
            raise ConflictError(
                "Workflow", "stages", str(wf.id),
                message="Workflow stages cannot be changed while mockups are in review",
            )
        wf.stages = stages.to_list()
    if "is_default" in data:
        is_default = parse_bool(data.get("is_default"))
        if is_default and not wf.is_default:
            _clear_other_defaults(org_id, keep_id=wf.id)
        wf.is_default = is_default
    if "is_archived" in data:
        wf.is_archived = parse_bool(data.get("is_archived"))
        if wf.is_archived:
            wf.is_default = False

    db.session.commit()
    logger.info("Workflow updated: %s", wf.id, extra={"org_id": org_id})
    return wf


def delete_workflow(org_id: int, workflow_id: int) -> dict:
    """Hard delete when unreferenced, otherwise archive."""
    wf = get_workflow(org_id, workflow_id)
    if _project_count(wf.id):
        wf.is_archived = True
        wf.is_default = False
        db.session.commit()
        logger.info("Workflow %s archived (still referenced)", wf.id, extra={"org_id": org_id})
        return {"id": wf.id, "archived": True, "deleted": False}

    db.session.delete(wf)
    db.session.commit()
    logger.info("Workflow %s deleted", workflow_id, extra={"org_id": org_id})
    return {"id": workflow_id, "archived": False, "deleted": True}
