"""
OrgModel: Abstract base class for organization-scoped models.

Every table owned by an organization inherits from OrgModel instead of
db.Model directly. This adds:
  - organization_id FK column with index
  - query_for_org(org_id) classmethod
"""

from datetime import datetime, timezone

from aiproval.models import db


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value):
    return as_utc(value).isoformat() if value else None


class OrgModel(db.Model):
    """Abstract base for organization-scoped tables."""
    __abstract__ = True

    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_org(cls, org_id):
        """Return a query filtered by organization_id."""
        return cls.query.filter_by(organization_id=org_id)
