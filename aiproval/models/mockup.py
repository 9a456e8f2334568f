"""
Aiproval
Mockup domain model.

Models:
    - Mockup: a visual asset (card, email template) under review
    - MockupStageProgress: one row per (mockup, stage) the mockup has entered
    - UserStageApproval: one reviewer's decision at one stage
    - MockupComment: internal comment, optionally pinned to a position
    - MockupActivity: append-only activity log

Deleting a mockup cascades its progress, approvals, comments, activity and
share link. Deleting a project only unassigns its mockups.
"""

from aiproval.models import db
from aiproval.core.progress import STAGE_STATUSES
from aiproval.models.base import OrgModel, isoformat, utcnow

MOCKUP_STATUSES = {"draft", "in_review", "approved", "changes_requested"}
STAGE_DECISIONS = {"approve", "request_changes"}


class Mockup(OrgModel):
    __tablename__ = "mockups"
    __table_args__ = (
        db.Index("ix_mockups_org_project", "organization_id", "project_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    image_url = db.Column(db.String(1000), nullable=False)
    status = db.Column(db.String(30), nullable=False, default="draft")
    created_by = db.Column(db.String(100), nullable=True)

    final_approved_by = db.Column(db.String(100), nullable=True)
    final_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    final_approval_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    project = db.relationship("Project", uselist=False)
    progress = db.relationship(
        "MockupStageProgress", back_populates="mockup",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="MockupStageProgress.stage_order",
    )
    approvals = db.relationship(
        "UserStageApproval", back_populates="mockup",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="UserStageApproval.created_at",
    )
    comments = db.relationship(
        "MockupComment", cascade="all, delete-orphan", passive_deletes=True,
    )
    activity = db.relationship(
        "MockupActivity", cascade="all, delete-orphan", passive_deletes=True,
    )
    share_link = db.relationship(
        "ShareLink", back_populates="mockup", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def clear_final_approval(self):
        self.final_approved_by = None
        self.final_approved_at = None
        self.final_approval_notes = None

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "name": self.name,
            "image_url": self.image_url,
            "status": self.status,
            "created_by": self.created_by,
            "final_approved_by": self.final_approved_by,
            "final_approved_at": isoformat(self.final_approved_at),
            "final_approval_notes": self.final_approval_notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Mockup {self.id}: {self.name}>"


class MockupStageProgress(db.Model):
    __tablename__ = "mockup_stage_progress"
    __table_args__ = (
        db.UniqueConstraint("mockup_id", "stage_order", name="uq_stage_progress_mockup_stage"),
        db.CheckConstraint(
            "approvals_received >= 0 AND approvals_received <= approvals_required",
            name="ck_stage_progress_approval_counts",
        ),
        db.CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in STAGE_STATUSES) + ")",
            name="ck_stage_progress_status",
        ),
        db.Index("ix_stage_progress_project_status", "project_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    stage_order = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(30), nullable=False, default="not_started")
    approvals_required = db.Column(db.Integer, nullable=False, default=1)
    approvals_received = db.Column(db.Integer, nullable=False, default=0)
    reviewed_by = db.Column(db.String(100), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    mockup = db.relationship("Mockup", back_populates="progress")

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "project_id": self.project_id,
            "stage_order": self.stage_order,
            "status": self.status,
            "approvals_required": self.approvals_required,
            "approvals_received": self.approvals_received,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": isoformat(self.reviewed_at),
            "notes": self.notes,
            "updated_at": isoformat(self.updated_at),
        }


class UserStageApproval(db.Model):
    __tablename__ = "user_stage_approvals"
    __table_args__ = (
        db.UniqueConstraint(
            "mockup_id", "stage_order", "user_id", name="uq_user_stage_approval",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    stage_order = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(100), nullable=False)
    user_name = db.Column(db.String(200), nullable=True)
    user_image_url = db.Column(db.String(500), nullable=True)
    decision = db.Column(db.String(20), nullable=False, default="approve")
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    mockup = db.relationship("Mockup", back_populates="approvals")

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "stage_order": self.stage_order,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_image_url": self.user_image_url,
            "decision": self.decision,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
        }


class MockupComment(db.Model):
    __tablename__ = "mockup_comments"

    id = db.Column(db.Integer, primary_key=True)
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(db.String(100), nullable=False)
    user_name = db.Column(db.String(200), nullable=True)
    comment_text = db.Column(db.Text, nullable=False)
    position_x = db.Column(db.Float, nullable=True, comment="% from left, 0-100")
    position_y = db.Column(db.Float, nullable=True, comment="% from top, 0-100")
    annotation_type = db.Column(db.String(20), default="none")
    annotation_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "comment_text": self.comment_text,
            "position_x": self.position_x,
            "position_y": self.position_y,
            "annotation_type": self.annotation_type,
            "annotation_data": self.annotation_data,
            "created_at": isoformat(self.created_at),
        }


class MockupActivity(db.Model):
    __tablename__ = "mockup_activity"

    id = db.Column(db.Integer, primary_key=True)
    mockup_id = db.Column(
        db.Integer, db.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    action = db.Column(db.String(50), nullable=False)
    actor_id = db.Column(db.String(100), nullable=True)
    details = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "mockup_id": self.mockup_id,
            "action": self.action,
            "actor_id": self.actor_id,
            "metadata": self.details or {},
            "created_at": isoformat(self.created_at),
        }
