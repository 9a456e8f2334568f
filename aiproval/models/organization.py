"""
Organization model.

Membership and invitations live in the external identity provider; this
table only anchors tenant isolation and carries per-org settings such as
the Slack webhook used for outbound notifications.
"""

from aiproval.models import db
from aiproval.models.base import isoformat, utcnow


class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    external_id = db.Column(db.String(100), unique=True, nullable=True,
                            comment="Identity provider org id")
    is_active = db.Column(db.Boolean, default=True)
    settings = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def setting(self, key, default=None):
        return (self.settings or {}).get(key, default)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "external_id": self.external_id,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Organization {self.id}: {self.slug}>"
