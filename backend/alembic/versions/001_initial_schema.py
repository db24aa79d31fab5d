"""initial schema: plans, release ledger, defect reports, audit

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_organizations_code", "organizations", ["code"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id")),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("initials", sa.String(50), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('admin', 'manager', 'inspector', 'operator')", name="chk_user_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_org_id", "users", ["org_id"])
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "work_plans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("area", sa.String(50), nullable=False),
        sa.Column("target_qty", sa.Integer(), nullable=False),
        sa.Column("producto", sa.String(255), nullable=False),
        sa.Column("color", sa.String(100)),
        sa.Column("lf", sa.String(100)),
        sa.Column("pt", sa.String(100)),
        sa.Column("lp", sa.String(100)),
        sa.Column("pedido", sa.String(100)),
        sa.Column("cliente", sa.String(255)),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("ledger_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("target_qty >= 0", name="chk_work_plan_target_non_negative"),
        sa.CheckConstraint("ledger_version >= 0", name="chk_work_plan_ledger_version"),
    )
    op.create_index("ix_work_plans_org_id", "work_plans", ["org_id"])
    op.create_index("ix_work_plans_area", "work_plans", ["area"])
    op.create_index("ix_work_plans_pedido", "work_plans", ["pedido"])
    op.create_index("ix_work_plans_created_at", "work_plans", ["created_at"])

    op.create_table(
        "release_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("work_plans.id"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("actor", sa.String(255), nullable=False),
        sa.Column("reversal_of_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("release_entries.id")),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount <> 0", name="chk_release_amount_non_zero"),
        sa.CheckConstraint(
            "(amount > 0 AND reversal_of_id IS NULL) OR (amount < 0 AND reversal_of_id IS NOT NULL)",
            name="chk_release_reversal_sign",
        ),
    )
    op.create_index("ix_release_entries_org_id", "release_entries", ["org_id"])
    op.create_index("ix_release_entries_plan_id", "release_entries", ["plan_id"])
    op.create_index("ix_release_entries_reversal_of_id", "release_entries", ["reversal_of_id"])
    op.create_index("ix_release_entries_created_at", "release_entries", ["created_at"])
    op.create_index("idx_release_entries_plan_created", "release_entries", ["plan_id", "created_at"])

    op.create_table(
        "defect_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("fecha", sa.Date(), nullable=False),
        sa.Column("area", sa.String(50), nullable=False),
        sa.Column("producto", sa.String(255), nullable=False),
        sa.Column("color", sa.String(100)),
        sa.Column("lf", sa.String(100)),
        sa.Column("pt", sa.String(100)),
        sa.Column("lp", sa.String(100)),
        sa.Column("pedido", sa.String(100)),
        sa.Column("cliente", sa.String(255)),
        sa.Column("defect_tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("descripcion", sa.Text()),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_defect_reports_org_id", "defect_reports", ["org_id"])
    op.create_index("ix_defect_reports_fecha", "defect_reports", ["fecha"])
    op.create_index("ix_defect_reports_area", "defect_reports", ["area"])
    op.create_index("ix_defect_reports_pedido", "defect_reports", ["pedido"])
    op.create_index("ix_defect_reports_created_at", "defect_reports", ["created_at"])

    op.create_table(
        "defect_photos",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "report_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("defect_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("original_name", sa.String(255)),
        sa.Column("size", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_defect_photos_org_id", "defect_photos", ["org_id"])
    op.create_index("ix_defect_photos_report_id", "defect_photos", ["report_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id")),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_name", sa.String(255)),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("user_name", sa.String(100)),
        sa.Column("details", postgresql.JSONB()),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("work_plans.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "action IN ('plan_created', 'release_recorded', 'release_reverted', "
            "'defect_reported', 'defect_photo_added', 'defects_bulk_deleted', "
            "'user_login', 'user_logout', 'LOGIN_FAILED')",
            name="chk_audit_action",
        ),
        sa.CheckConstraint("entity_type IN ('plan', 'release', 'defect', 'user')", name="chk_audit_entity_type"),
    )
    op.create_index("ix_audit_events_org_id", "audit_events", ["org_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_user_id", "audit_events", ["user_id"])
    op.create_index("ix_audit_events_plan_id", "audit_events", ["plan_id"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])
    op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("defect_photos")
    op.drop_table("defect_reports")
    op.drop_table("release_entries")
    op.drop_table("work_plans")
    op.drop_table("users")
    op.drop_table("organizations")
