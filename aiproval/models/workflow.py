"""
Aiproval
Workflow domain model.

Models:
    - Workflow: ordered approval stages owned by an organization and
      referenced (not owned) by projects.

The ``stages`` column stores the JSON form of a validated WorkflowStages;
read it through ``Workflow.stage_list`` so it is re-validated on the way out.
"""

from aiproval.core.stages import WorkflowStages
from aiproval.models import db
from aiproval.models.base import OrgModel, isoformat, utcnow


class Workflow(OrgModel):
    __tablename__ = "workflows"
    __table_args__ = (
        db.Index("ix_workflows_org_default", "organization_id", "is_default"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    stages = db.Column(db.JSON, nullable=False, default=list)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    projects = db.relationship("Project", back_populates="workflow", lazy="dynamic")

    @property
    def stage_list(self) -> WorkflowStages:
        return WorkflowStages.from_stored(self.stages)

    def to_dict(self, include_counts=False):
        d = {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "stages": list(self.stages or []),
            "is_default": self.is_default,
            "is_archived": self.is_archived,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_counts:
            d["stage_count"] = len(self.stages or [])
            d["project_count"] = self.projects.count()
        return d

    def __repr__(self):
        return f"<Workflow {self.id}: {self.name}>"
