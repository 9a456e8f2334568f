"""initial_schema

Create the organization, workflow, project, mockup, share link and
notification tables.

Revision ID: a1f0c2d3e4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1f0c2d3e4b5"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return cols


def _org_fk():
    return sa.Column(
        "organization_id", sa.Integer(),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False, unique=True),
        sa.Column("external_id", sa.String(length=100), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "workflows",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("stages", sa.JSON(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_workflows_organization_id", "workflows", ["organization_id"])
    op.create_index("ix_workflows_org_default", "workflows", ["organization_id", "is_default"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("ein", sa.String(length=50), nullable=True),
        sa.Column(
            "parent_client_id", sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_clients_organization_id", "clients", ["organization_id"])
    op.create_index("ix_clients_parent_client_id", "clients", ["parent_client_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("color", sa.String(length=7), nullable=False, server_default="#3B82F6"),
        sa.Column(
            "client_id", sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "workflow_id", sa.Integer(),
            sa.ForeignKey("workflows.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_organization_id", "projects", ["organization_id"])
    op.create_index("ix_projects_client_id", "projects", ["client_id"])
    op.create_index("ix_projects_workflow_id", "projects", ["workflow_id"])
    op.create_index("ix_projects_org_status", "projects", ["organization_id", "status"])

    op.create_table(
        "stage_reviewers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("stage_order", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=False),
        sa.Column("user_image_url", sa.String(length=500), nullable=True),
        sa.Column("added_by", sa.String(length=100), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint(
            "project_id", "stage_order", "user_id",
            name="uq_stage_reviewer_project_stage_user",
        ),
    )
    op.create_index("ix_stage_reviewers_project_id", "stage_reviewers", ["project_id"])
    op.create_index("ix_stage_reviewers_user", "stage_reviewers", ["user_id"])

    op.create_table(
        "mockups",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("image_url", sa.String(length=1000), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        sa.Column("final_approved_by", sa.String(length=100), nullable=True),
        sa.Column("final_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_approval_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_mockups_organization_id", "mockups", ["organization_id"])
    op.create_index("ix_mockups_project_id", "mockups", ["project_id"])
    op.create_index("ix_mockups_org_project", "mockups", ["organization_id", "project_id"])

    op.create_table(
        "mockup_stage_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("stage_order", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="not_started"),
        sa.Column("approvals_required", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("approvals_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reviewed_by", sa.String(length=100), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("mockup_id", "stage_order", name="uq_stage_progress_mockup_stage"),
        sa.CheckConstraint(
            "approvals_received >= 0 AND approvals_received <= approvals_required",
            name="ck_stage_progress_approval_counts",
        ),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_review', 'approved', 'changes_requested')",
            name="ck_stage_progress_status",
        ),
    )
    op.create_index("ix_mockup_stage_progress_mockup_id", "mockup_stage_progress", ["mockup_id"])
    op.create_index(
        "ix_stage_progress_project_status", "mockup_stage_progress", ["project_id", "status"],
    )

    op.create_table(
        "user_stage_approvals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("stage_order", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=True),
        sa.Column("user_image_url", sa.String(length=500), nullable=True),
        sa.Column("decision", sa.String(length=20), nullable=False, server_default="approve"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("mockup_id", "stage_order", "user_id", name="uq_user_stage_approval"),
    )
    op.create_index("ix_user_stage_approvals_mockup_id", "user_stage_approvals", ["mockup_id"])

    op.create_table(
        "mockup_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=True),
        sa.Column("comment_text", sa.Text(), nullable=False),
        sa.Column("position_x", sa.Float(), nullable=True),
        sa.Column("position_y", sa.Float(), nullable=True),
        sa.Column("annotation_type", sa.String(length=20), nullable=True),
        sa.Column("annotation_data", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_mockup_comments_mockup_id", "mockup_comments", ["mockup_id"])

    op.create_table(
        "mockup_activity",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_mockup_activity_mockup_id", "mockup_activity", ["mockup_id"])

    op.create_table(
        "public_reviewers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_token", sa.String(length=64), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("company", sa.String(length=200), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_public_reviewers_email", "public_reviewers", ["email"])

    op.create_table(
        "share_links",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False, unique=True,
        ),
        sa.Column("token", sa.String(length=1024), nullable=True, unique=True),
        sa.Column("permissions", sa.String(length=20), nullable=False, server_default="view"),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("use_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "identity_required_level", sa.String(length=20), nullable=False, server_default="none",
        ),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_share_links_organization_id", "share_links", ["organization_id"])

    op.create_table(
        "share_analytics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "share_link_id", sa.Integer(),
            sa.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("viewer_ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column(
            "public_reviewer_id", sa.Integer(),
            sa.ForeignKey("public_reviewers.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("actions_taken", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_share_analytics_share_link_id", "share_analytics", ["share_link_id"])

    op.create_table(
        "public_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "share_link_id", sa.Integer(),
            sa.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "public_reviewer_id", sa.Integer(),
            sa.ForeignKey("public_reviewers.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "author_name", sa.String(length=200), nullable=False,
            server_default="Anonymous Reviewer",
        ),
        sa.Column("author_email", sa.String(length=255), nullable=True),
        sa.Column("comment_text", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_public_comments_share_link_id", "public_comments", ["share_link_id"])
    op.create_index("ix_public_comments_mockup_id", "public_comments", ["mockup_id"])

    op.create_table(
        "public_review_decisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "share_link_id", sa.Integer(),
            sa.ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "public_reviewer_id", sa.Integer(),
            sa.ForeignKey("public_reviewers.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("decision", sa.String(length=30), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "share_link_id", "public_reviewer_id", name="uq_public_decision_link_reviewer",
        ),
    )
    op.create_index(
        "ix_public_review_decisions_mockup_id", "public_review_decisions", ["mockup_id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("link_url", sa.String(length=500), nullable=True),
        sa.Column(
            "related_mockup_id", sa.Integer(),
            sa.ForeignKey("mockups.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column(
            "related_project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_notifications_organization_id", "notifications", ["organization_id"])
    op.create_index(
        "ix_notifications_org_user_read", "notifications",
        ["organization_id", "user_id", "is_read"],
    )

    op.create_table(
        "integration_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_fk(),
        sa.Column("provider", sa.String(length=30), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("http_status", sa.Integer(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_integration_events_organization_id", "integration_events", ["organization_id"],
    )


def downgrade():
    for table in (
        "integration_events",
        "notifications",
        "public_review_decisions",
        "public_comments",
        "share_analytics",
        "share_links",
        "public_reviewers",
        "mockup_activity",
        "mockup_comments",
        "user_stage_approvals",
        "mockup_stage_progress",
        "mockups",
        "stage_reviewers",
        "projects",
        "clients",
        "workflows",
        "organizations",
    ):
        op.drop_table(table)
