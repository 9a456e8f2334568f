"""
Aiproval
Project domain model.

Models:
    - Project: groups mockups, optionally governed by one Workflow
    - StageReviewer: a user registered to review one stage of one project

A user can be registered at most once per (project, stage); the unique
constraint is the source of truth, service code maps its IntegrityError to
a 409.
"""

from aiproval.models import db
from aiproval.models.base import OrgModel, isoformat, utcnow

PROJECT_STATUSES = {"active", "completed", "archived"}
PROJECT_NAME_MAX = 100
DEFAULT_PROJECT_COLOR = "#3B82F6"


class Project(OrgModel):
    __tablename__ = "projects"
    __table_args__ = (
        db.Index("ix_projects_org_status", "organization_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(PROJECT_NAME_MAX), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="active")
    color = db.Column(db.String(7), nullable=False, default=DEFAULT_PROJECT_COLOR)
    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    workflow_id = db.Column(
        db.Integer, db.ForeignKey("workflows.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    workflow = db.relationship("Workflow", back_populates="projects", uselist=False)
    client = db.relationship("Client", uselist=False)
    reviewers = db.relationship(
        "StageReviewer", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self, include_workflow=False):
        d = {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "color": self.color,
            "client_id": self.client_id,
            "workflow_id": self.workflow_id,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_workflow:
            d["workflow"] = self.workflow.to_dict() if self.workflow else None
        return d

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


class StageReviewer(db.Model):
    __tablename__ = "stage_reviewers"
    __table_args__ = (
        db.UniqueConstraint(
            "project_id", "stage_order", "user_id",
            name="uq_stage_reviewer_project_stage_user",
        ),
        db.Index("ix_stage_reviewers_user", "user_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    stage_order = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(100), nullable=False)
    user_name = db.Column(db.String(200), nullable=False)
    user_image_url = db.Column(db.String(500), nullable=True)
    added_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    project = db.relationship("Project", back_populates="reviewers")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "stage_order": self.stage_order,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_image_url": self.user_image_url,
            "added_by": self.added_by,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<StageReviewer project={self.project_id} stage={self.stage_order} user={self.user_id}>"
