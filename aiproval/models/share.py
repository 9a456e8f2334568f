"""
Aiproval
Public share link model: anonymous access to a single mockup.

Models:
    - ShareLink: bearer-token access grant, at most one per mockup
    - ShareAnalytics: one row per successful access or public action
    - PublicReviewer: identity captured from an anonymous reviewer,
      keyed by an opaque session token (distinct from the share token)
    - PublicComment: comment left through a share link
    - PublicReviewDecision: latest approve / changes_requested decision
      of one public reviewer on one link
"""

from aiproval.models import db
from aiproval.models.base import OrgModel, isoformat, utcnow

SHARE_PERMISSIONS = ("view", "comment", "approve")
IDENTITY_LEVELS = ("none", "comment", "approve")
PUBLIC_DECISIONS = ("approved", "changes_requested")


class ShareLink(OrgModel):
    __tablename__ = "share_links"

    id = db.Column(db.Integer, primary_key=True)
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    token = db.Column(db.String(1024), nullable=True, unique=True)
    permissions = db.Column(db.String(20), nullable=False, default="view")
    password_hash = db.Column(db.String(255), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    max_uses = db.Column(db.Integer, nullable=True)
    use_count = db.Column(db.Integer, nullable=False, default=0)
    identity_required_level = db.Column(db.String(20), nullable=False, default="none")
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    mockup = db.relationship("Mockup", back_populates="share_link")
    analytics = db.relationship(
        "ShareAnalytics", cascade="all, delete-orphan", passive_deletes=True,
        order_by="ShareAnalytics.created_at",
    )

    @property
    def has_password(self):
        return bool(self.password_hash)

    def to_dict(self, include_token=True):
        d = {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "permissions": self.permissions,
            "has_password": self.has_password,
            "expires_at": isoformat(self.expires_at),
            "max_uses": self.max_uses,
            "use_count": self.use_count,
            "identity_required_level": self.identity_required_level,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }
        if include_token:
            d["token"] = self.token
        return d


class ShareAnalytics(db.Model):
    __tablename__ = "share_analytics"

    id = db.Column(db.Integer, primary_key=True)
    share_link_id = db.Column(
        db.Integer, db.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    viewer_ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    public_reviewer_id = db.Column(
        db.Integer, db.ForeignKey("public_reviewers.id", ondelete="SET NULL"), nullable=True,
    )
    actions_taken = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "share_link_id": self.share_link_id,
            "viewer_ip": self.viewer_ip,
            "user_agent": self.user_agent,
            "public_reviewer_id": self.public_reviewer_id,
            "actions_taken": list(self.actions_taken or []),
            "created_at": isoformat(self.created_at),
        }


class PublicReviewer(db.Model):
    __tablename__ = "public_reviewers"

    id = db.Column(db.Integer, primary_key=True)
    session_token = db.Column(db.String(64), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=True)
    company = db.Column(db.String(200), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    @property
    def has_identity(self):
        return bool(self.email and self.name)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "company": self.company,
            "verified_at": isoformat(self.verified_at),
            "created_at": isoformat(self.created_at),
        }


class PublicComment(db.Model):
    __tablename__ = "public_comments"

    id = db.Column(db.Integer, primary_key=True)
    share_link_id = db.Column(
        db.Integer, db.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    public_reviewer_id = db.Column(
        db.Integer, db.ForeignKey("public_reviewers.id", ondelete="SET NULL"), nullable=True,
    )
    author_name = db.Column(db.String(200), nullable=False, default="Anonymous Reviewer")
    author_email = db.Column(db.String(255), nullable=True)
    comment_text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "comment_text": self.comment_text,
            "created_at": isoformat(self.created_at),
        }


class PublicReviewDecision(db.Model):
    __tablename__ = "public_review_decisions"
    __table_args__ = (
        db.UniqueConstraint(
            "share_link_id", "public_reviewer_id", name="uq_public_decision_link_reviewer",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    share_link_id = db.Column(
        db.Integer, db.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False,
    )
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    public_reviewer_id = db.Column(
        db.Integer, db.ForeignKey("public_reviewers.id", ondelete="CASCADE"), nullable=False,
    )
    decision = db.Column(db.String(30), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "public_reviewer_id": self.public_reviewer_id,
            "decision": self.decision,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
