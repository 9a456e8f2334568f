"""
Notification Service.

Central service for creating and querying in-app notifications, plus
optional Slack relay of the same events.

``notify`` / ``notify_users`` add rows to the caller's session and leave the
commit to the caller, so a notification is stored together with the change
that caused it. They never raise: a failure is logged and the main
operation goes on. ``relay_to_slack`` runs after the caller has committed
and records every delivery attempt as an IntegrationEvent.
"""

import logging

from flask import current_app
from sqlalchemy import func, select, update

from aiproval.core.exceptions import NotFoundError
from aiproval.integrations.slack_gateway import slack_gateway
from aiproval.models import db
from aiproval.models.base import utcnow
from aiproval.models.notification import IntegrationEvent, Notification
from aiproval.models.organization import Organization

logger = logging.getLogger(__name__)


def mockup_link(mockup_id) -> str:
    base = current_app.config.get("APP_BASE_URL", "").rstrip("/")
    return f"{base}/mockups/{mockup_id}"


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def notify(*, org_id, user_id, type, title, message="", link_url=None,
               mockup_id=None, project_id=None, metadata=None):
        """
        Stage one notification for ``user_id`` in the current session.

        Returns:
            The pending Notification, or None when it could not be built.
        """
        if not user_id:
            return None
        try:
            notif = Notification(
                organization_id=org_id,
                user_id=user_id,
                type=type,
                title=title[:300],
                message=message or "",
                link_url=link_url,
                related_mockup_id=mockup_id,
                related_project_id=project_id,
                details=metadata or {},
            )
            db.session.add(notif)
            return notif
        except Exception:
            logger.exception(
                "Failed to create notification", extra={"org_id": org_id, "user_id": user_id},
            )
            return None

    @staticmethod
    def notify_users(user_ids, *, exclude=None, **kwargs):
        """
        Notify each distinct user in ``user_ids`` except ``exclude``.

        Returns:
            List of pending Notification instances.
        """
        created = []
        seen = set()
        for uid in user_ids or ():
            if not uid or uid == exclude or uid in seen:
                continue
            seen.add(uid)
            notif = NotificationService.notify(user_id=uid, **kwargs)
            if notif is not None:
                created.append(notif)
        return created

    # ── Slack relay ───────────────────────────────────────────────────────

    @staticmethod
    def relay_to_slack(org_id, event_type, text):
        """
        Deliver ``text`` to the org's Slack webhook, if one is configured.

        Must be called after the triggering change is committed. Returns the
        recorded IntegrationEvent, or None when Slack is not configured.
        """
        try:
            org = db.session.get(Organization, org_id)
            webhook_url = (org.setting("slack_webhook_url") if org else None) \
                or current_app.config.get("SLACK_WEBHOOK_URL")
            if not webhook_url:
                return None

            result = slack_gateway.post_message(
                webhook_url, text, timeout=current_app.config.get("SLACK_TIMEOUT", 5),
            )
            event = IntegrationEvent(
                organization_id=org_id,
                provider="slack",
                event_type=event_type,
                status="success" if result.ok else "failed",
                detail=result.error,
                http_status=result.status_code,
            )
            db.session.add(event)
            db.session.commit()
            if not result.ok:
                logger.warning(
                    "Slack delivery failed: %s", result.error,
                    extra={"org_id": org_id, "event_type": event_type},
                )
            return event
        except Exception:
            db.session.rollback()
            logger.exception(
                "Slack relay crashed", extra={"org_id": org_id, "event_type": event_type},
            )
            return None

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(org_id, user_id, unread_only=False, limit=50, offset=0):
        """Retrieve the user's notifications, newest first. Returns (items, total)."""
        filters = [Notification.organization_id == org_id, Notification.user_id == user_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))

        total = db.session.execute(
            select(func.count(Notification.id)).where(*filters)
        ).scalar_one()
        items = db.session.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return items, total

    @staticmethod
    def unread_count(org_id, user_id):
        return db.session.execute(
            select(func.count(Notification.id)).where(
                Notification.organization_id == org_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        ).scalar_one()

    @staticmethod
    def list_integration_events(org_id, limit=50, offset=0):
        base = select(IntegrationEvent).where(IntegrationEvent.organization_id == org_id)
        total = db.session.execute(
            select(func.count(IntegrationEvent.id)).where(IntegrationEvent.organization_id == org_id)
        ).scalar_one()
        items = db.session.execute(
            base.order_by(IntegrationEvent.created_at.desc(), IntegrationEvent.id.desc())
            .offset(offset).limit(limit)
        ).scalars().all()
        return items, total

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(org_id, user_id, notification_id):
        """Mark one of the user's notifications as read."""
        notif = db.session.get(Notification, notification_id)
        if notif is None or notif.organization_id != org_id or notif.user_id != user_id:
            raise NotFoundError(resource="Notification", resource_id=notification_id, org_id=org_id)
        if not notif.is_read:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(org_id, user_id):
        """Mark all of the user's notifications as read. Returns the count updated."""
        result = db.session.execute(
            update(Notification)
            .where(
                Notification.organization_id == org_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        db.session.commit()
        return result.rowcount
