"""
Aiproval
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking
    - IntegrationEvent: outcome of one outbound integration call (Slack
      webhook delivery); failures land here instead of failing the request
"""

from aiproval.models import db
from aiproval.models.base import OrgModel, isoformat, utcnow

NOTIFICATION_TYPES = {
    "approval_request",
    "approval_received",
    "comment",
    "stage_progress",
    "final_approval",
    "changes_requested",
}
INTEGRATION_EVENT_STATUSES = {"success", "failed", "skipped"}


class Notification(OrgModel):
    """
    In-app notification entity.

    One record per recipient per event.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_org_user_read", "organization_id", "user_id", "is_read"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    link_url = db.Column(db.String(500), nullable=True)

    related_mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=True,
    )
    related_project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
    )
    details = db.Column(db.JSON, default=dict)

    is_read = db.Column(db.Boolean, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def mark_read(self):
        self.is_read = True
        self.read_at = utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link_url": self.link_url,
            "related_mockup_id": self.related_mockup_id,
            "related_project_id": self.related_project_id,
            "metadata": self.details or {},
            "is_read": self.is_read,
            "read_at": isoformat(self.read_at),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"


class IntegrationEvent(OrgModel):
    __tablename__ = "integration_events"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(30), nullable=False)
    event_type = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), nullable=False)
    detail = db.Column(db.Text, nullable=True)
    http_status = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "event_type": self.event_type,
            "status": self.status,
            "detail": self.detail,
            "http_status": self.http_status,
            "created_at": isoformat(self.created_at),
        }
