"""Append-only mockup activity log.

Entries are added to the caller's session and committed with the change
they describe. Logging activity never fails the main operation.
"""

import logging

from sqlalchemy import select

from aiproval.models import db
from aiproval.models.mockup import MockupActivity

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = {
    "created",
    "updated",
    "moved",
    "duplicated",
    "review_requested",
    "stage_approved",
    "changes_requested",
    "final_approved",
    "shared",
    "share_revoked",
    "commented",
}


def log_activity(mockup_id, action, actor_id=None, metadata=None):
    if action not in ACTIVITY_ACTIONS:
        logger.warning("Unknown activity action %r", action, extra={"mockup_id": mockup_id})
    try:
        entry = MockupActivity(
            mockup_id=mockup_id, action=action, actor_id=actor_id, details=metadata or {},
        )
        db.session.add(entry)
        return entry
    except Exception:
        logger.exception("Failed to log activity %s", action, extra={"mockup_id": mockup_id})
        return None


def list_activity(mockup_id, limit=100):
    return db.session.execute(
        select(MockupActivity)
        .where(MockupActivity.mockup_id == mockup_id)
        .order_by(MockupActivity.created_at.desc(), MockupActivity.id.desc())
        .limit(limit)
    ).scalars().all()
