"""
Mockup Service: mockup CRUD, project moves, duplication and comments.

Ownership:
    - update: creator only (rows without a creator are editable by anyone
      in the organization)
    - delete / move / request review: creator or org admin
    - comments: creator, org admin, or a registered reviewer of the
      mockup's project; a comment is deleted by its author or an admin
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from aiproval.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from aiproval.models import db
from aiproval.models.mockup import Mockup, MockupComment
from aiproval.models.project import Project
from aiproval.services import stage_progress_service
from aiproval.services.activity_service import list_activity, log_activity
from aiproval.services.notification_service import NotificationService, mockup_link
from aiproval.services.project_service import get_project_or_target_404
from aiproval.services.reviewer_service import is_project_reviewer
from aiproval.utils.helpers import clean_str, get_scoped_or_404, require_fields

logger = logging.getLogger(__name__)

MOCKUP_NAME_MAX = 200
IMAGE_URL_MAX = 1000
ANNOTATION_TYPES = {"none", "point", "rectangle", "circle", "arrow", "freehand"}


# ── Private helpers ────────────────────────────────────────────────────────────


def _validated_name(value) -> str:
    name = clean_str(value)
    if not name:
        raise ValidationError("Mockup name is required", details={"name": "required"})
    if len(name) > MOCKUP_NAME_MAX:
        raise ValidationError(f"Mockup name must be less than {MOCKUP_NAME_MAX} characters")
    return name


def _validated_image_url(value) -> str:
    url = clean_str(value)
    if not url:
        raise ValidationError("Image URL is required", details={"image_url": "required"})
    if len(url) > IMAGE_URL_MAX:
        raise ValidationError(f"Image URL must be less than {IMAGE_URL_MAX} characters")
    return url


def _validated_position(value, axis: str):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        raise ValidationError(f"position_{axis} must be a number between 0 and 100")
    return float(value)


def _is_creator_or_legacy(mockup: Mockup, principal) -> bool:
    return mockup.created_by is None or mockup.created_by == principal.user_id


def _ensure_can_manage(mockup: Mockup, principal) -> None:
    if not (principal.is_admin or _is_creator_or_legacy(mockup, principal)):
        raise ForbiddenError("Only the mockup creator or an admin can do this")


def _ensure_can_comment(mockup: Mockup, principal) -> None:
    if principal.is_admin or _is_creator_or_legacy(mockup, principal):
        return
    if mockup.project_id is not None and is_project_reviewer(mockup.project_id, principal.user_id):
        return
    raise ForbiddenError("You do not have access to comment on this mockup")


def _attach_to_project(mockup: Mockup, project: Project | None, actor_id: str) -> None:
    """Point ``mockup`` at ``project`` and (re)start or clear its stage progress."""
    mockup.project = project
    if project is not None and project.workflow_id is not None:
        stage_progress_service.initialize_progress(mockup, project, actor_id=actor_id)
    else:
        stage_progress_service.reset_to_draft(mockup)


# ── Queries ────────────────────────────────────────────────────────────────────


def list_mockups(org_id: int, project_id: int | None = None, unassigned: bool = False) -> list[Mockup]:
    stmt = select(Mockup).where(Mockup.organization_id == org_id)
    if unassigned:
        stmt = stmt.where(Mockup.project_id.is_(None))
    elif project_id is not None:
        stmt = stmt.where(Mockup.project_id == project_id)
    return db.session.execute(
        stmt.order_by(Mockup.created_at.desc(), Mockup.id.desc())
    ).scalars().all()


def get_mockup(org_id: int, mockup_id: int) -> Mockup:
    return get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")


# ── Commands ───────────────────────────────────────────────────────────────────


def create_mockup(org_id: int, principal, data: dict) -> Mockup:
    require_fields(data, ["name", "image_url"])
    project = None
    if data.get("project_id") is not None:
        project = get_scoped_or_404(Project, data["project_id"], org_id, label="Project")

    mockup = Mockup(
        organization_id=org_id,
        name=_validated_name(data.get("name")),
        image_url=_validated_image_url(data.get("image_url")),
        status="draft",
        created_by=principal.user_id,
    )
    db.session.add(mockup)
    db.session.flush()
    log_activity(mockup.id, "created", principal.user_id, {"name": mockup.name})
    if project is not None:
        _attach_to_project(mockup, project, principal.user_id)
    db.session.commit()
    logger.info("Mockup created: %s", mockup.id,
                extra={"org_id": org_id, "mockup_id": mockup.id, "project_id": mockup.project_id})
    return mockup


def update_mockup(org_id: int, mockup_id: int, principal, data: dict) -> Mockup:
    mockup = get_mockup(org_id, mockup_id)
    if not _is_creator_or_legacy(mockup, principal):
        raise ForbiddenError("Only the mockup creator can edit this mockup")

    changed = []
    if "name" in data:
        mockup.name = _validated_name(data.get("name"))
        changed.append("name")
    if "image_url" in data:
        mockup.image_url = _validated_image_url(data.get("image_url"))
        changed.append("image_url")
    if changed:
        log_activity(mockup.id, "updated", principal.user_id, {"fields": changed})
    db.session.commit()
    return mockup


def delete_mockup(org_id: int, mockup_id: int, principal) -> None:
    mockup = get_mockup(org_id, mockup_id)
    _ensure_can_manage(mockup, principal)
    db.session.delete(mockup)
    db.session.commit()
    logger.info("Mockup deleted: %s", mockup_id, extra={"org_id": org_id, "mockup_id": mockup_id})


def move_mockup(org_id: int, mockup_id: int, principal, project_id) -> Mockup:
    """Re-assign a mockup to another project of the org, or unassign it (None)."""
    mockup = get_mockup(org_id, mockup_id)
    _ensure_can_manage(mockup, principal)
    target = get_project_or_target_404(org_id, project_id) if project_id is not None else None

    previous_project_id = mockup.project_id
    _attach_to_project(mockup, target, principal.user_id)
    log_activity(mockup.id, "moved", principal.user_id, {
        "from_project_id": previous_project_id,
        "to_project_id": target.id if target else None,
    })
    db.session.commit()
    logger.info("Mockup moved %s -> %s", previous_project_id, mockup.project_id,
                extra={"org_id": org_id, "mockup_id": mockup.id})
    return mockup


def duplicate_mockup(org_id: int, mockup_id: int, principal, name=None) -> Mockup:
    """Copy a mockup as a fresh draft: no project, no progress, no comments."""
    source = get_mockup(org_id, mockup_id)
    copy = Mockup(
        organization_id=org_id,
        name=_validated_name(name) if name is not None else f"Copy of {source.name}"[:MOCKUP_NAME_MAX],
        image_url=source.image_url,
        status="draft",
        created_by=principal.user_id,
    )
    db.session.add(copy)
    db.session.flush()
    log_activity(copy.id, "duplicated", principal.user_id, {"source_mockup_id": source.id})
    log_activity(source.id, "duplicated", principal.user_id, {"copy_mockup_id": copy.id})
    db.session.commit()
    return copy


# ── Comments ───────────────────────────────────────────────────────────────────


def list_comments(org_id: int, mockup_id: int, principal) -> list[MockupComment]:
    mockup = get_mockup(org_id, mockup_id)
    _ensure_can_comment(mockup, principal)
    return db.session.execute(
        select(MockupComment)
        .where(MockupComment.mockup_id == mockup.id)
        .order_by(MockupComment.created_at.asc(), MockupComment.id.asc())
    ).scalars().all()


def add_comment(org_id: int, mockup_id: int, principal, data: dict) -> MockupComment:
    mockup = get_mockup(org_id, mockup_id)
    _ensure_can_comment(mockup, principal)
    text = clean_str(data.get("comment_text"))
    if not text:
        raise ValidationError("Missing required fields: comment_text")

    annotation_type = data.get("annotation_type") or "none"
    if annotation_type not in ANNOTATION_TYPES:
        raise ValidationError(
            f"Invalid annotation_type. Must be one of: {', '.join(sorted(ANNOTATION_TYPES))}",
        )

    comment = MockupComment(
        mockup_id=mockup.id,
        user_id=principal.user_id,
        user_name=principal.display_name,
        comment_text=text,
        position_x=_validated_position(data.get("position_x"), "x"),
        position_y=_validated_position(data.get("position_y"), "y"),
        annotation_type=annotation_type,
        annotation_data=data.get("annotation_data") if isinstance(data.get("annotation_data"), dict) else None,
    )
    db.session.add(comment)
    log_activity(mockup.id, "commented", principal.user_id, {"preview": comment.comment_text[:100]})
    NotificationService.notify_users(
        [mockup.created_by],
        exclude=principal.user_id,
        org_id=org_id,
        type="comment",
        title=f"New comment on {mockup.name}",
        message=f"{principal.display_name}: {comment.comment_text[:200]}",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=mockup.project_id,
    )
    db.session.commit()
    return comment


def delete_comment(org_id: int, mockup_id: int, comment_id: int, principal) -> None:
    mockup = get_mockup(org_id, mockup_id)
    comment = db.session.get(MockupComment, comment_id)
    if comment is None or comment.mockup_id != mockup.id:
        raise NotFoundError(resource="Comment", resource_id=comment_id, org_id=org_id)
    if not (principal.is_admin or comment.user_id == principal.user_id):
        raise ForbiddenError("Only the comment author or an admin can delete this comment")
    db.session.delete(comment)
    db.session.commit()


def get_activity(org_id: int, mockup_id: int, limit: int = 100) -> list[dict]:
    mockup = get_mockup(org_id, mockup_id)
    return [a.to_dict() for a in list_activity(mockup.id, limit=limit)]
