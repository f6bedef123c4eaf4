"""initial_schema

Facility hierarchy, inspections, users/roles, audit trail, billing and the
webhook dedup gate. RLS is enabled on every table with no policies; the
server connects as the owner role and bypasses it.

Revision ID: 3f1c2a9d7e01
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7e01'
down_revision = None
branch_labels = None
depends_on = None

TZ = sa.TIMESTAMP(timezone=True)

TABLES = (
    "organizations",
    "buildings",
    "locations",
    "inspection_templates",
    "user_occupations",
    "users",
    "inspection_records",
    "roles",
    "user_roles",
    "audit_logs",
    "plans",
    "subscriptions",
    "payments",
    "webhook_dedup_events",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TZ, nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", TZ, nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("name", sa.TEXT(), nullable=False),
        sa.Column("short_code", sa.TEXT(), nullable=False),
        sa.Column("address", sa.TEXT()),
        sa.Column("phone", sa.TEXT()),
        sa.Column("email", sa.TEXT()),
        sa.Column("logo_url", sa.TEXT()),
        sa.Column("type", sa.TEXT()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.TEXT()),
        sa.Column("current_plan_id", sa.TEXT()),
        sa.Column("subscription_id", sa.TEXT()),
        *_timestamps(),
    )
    op.create_index("idx_organizations_short_code", "organizations", ["short_code"])
    op.create_index("idx_organizations_created_by", "organizations", ["created_by"])

    op.create_table(
        "buildings",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("organization_id", sa.TEXT(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.TEXT(), nullable=False),
        sa.Column("short_code", sa.TEXT(), nullable=False),
        sa.Column("address", sa.TEXT()),
        sa.Column("total_floors", sa.INTEGER()),
        sa.Column("type", sa.TEXT()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.TEXT()),
        *_timestamps(),
    )
    op.create_index("idx_buildings_organization", "buildings", ["organization_id"])

    op.create_table(
        "locations",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("organization_id", sa.TEXT(), sa.ForeignKey("organizations.id")),
        sa.Column("building_id", sa.TEXT(), sa.ForeignKey("buildings.id")),
        sa.Column("name", sa.TEXT(), nullable=False),
        sa.Column("code", sa.TEXT()),
        sa.Column("qr_code", sa.TEXT(), unique=True),
        sa.Column("floor", sa.TEXT()),
        sa.Column("section", sa.TEXT()),
        sa.Column("area", sa.TEXT()),
        sa.Column("description", sa.TEXT()),
        sa.Column("coordinates", sa.JSON()),
        sa.Column("photo_url", sa.TEXT()),
        sa.Column("type", sa.TEXT()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.TEXT()),
        *_timestamps(),
    )
    op.create_index("idx_locations_building", "locations", ["building_id"])
    op.create_index("idx_locations_organization", "locations", ["organization_id"])

    op.create_table(
        "inspection_templates",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("name", sa.TEXT(), nullable=False),
        sa.Column("description", sa.TEXT()),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("estimated_time", sa.INTEGER()),
        sa.Column("is_default", sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.TEXT()),
        *_timestamps(),
    )

    op.create_table(
        "user_occupations",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("name", sa.TEXT(), nullable=False, unique=True),
        sa.Column("display_name", sa.TEXT(), nullable=False),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("email", sa.TEXT(), nullable=False, unique=True),
        sa.Column("full_name", sa.TEXT(), nullable=False),
        sa.Column("phone", sa.TEXT()),
        sa.Column("occupation_id", sa.TEXT(), sa.ForeignKey("user_occupations.id")),
        sa.Column("organization_id", sa.TEXT()),
        sa.Column("profile_photo_url", sa.TEXT()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", TZ),
        *_timestamps(),
    )
    op.create_index("idx_users_organization", "users", ["organization_id"])

    op.create_table(
        "inspection_records",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("user_id", sa.TEXT(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("location_id", sa.TEXT(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("organization_id", sa.TEXT()),
        sa.Column("template_id", sa.TEXT()),
        sa.Column("inspection_date", sa.DATE(), nullable=False),
        sa.Column("inspection_time", sa.TEXT()),
        sa.Column("overall_status", sa.TEXT(), nullable=False, server_default="satisfactory"),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("photo_urls", sa.JSON(), nullable=False),
        sa.Column("notes", sa.TEXT()),
        sa.Column("duration_seconds", sa.INTEGER()),
        sa.Column("submitted_at", TZ),
        sa.Column("verified_by", sa.TEXT()),
        sa.Column("verified_at", TZ),
        sa.Column("verification_notes", sa.TEXT()),
        *_timestamps(),
    )
    op.create_index("idx_inspections_user_date", "inspection_records", ["user_id", "inspection_date"])
    op.create_index("idx_inspections_location", "inspection_records", ["location_id"])
    op.create_index("idx_inspections_date", "inspection_records", ["inspection_date"])

    op.create_table(
        "roles",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("name", sa.TEXT(), nullable=False, unique=True),
        sa.Column("display_name", sa.TEXT()),
        sa.Column("description", sa.TEXT()),
        sa.Column("level", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("user_id", sa.TEXT(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role_id", sa.TEXT(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("assigned_by", sa.TEXT()),
        sa.Column("assigned_at", TZ, nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", name="uq_user_roles_user"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BIGINT(), sa.Identity(), primary_key=True),
        sa.Column("user_id", sa.TEXT()),
        sa.Column("action", sa.TEXT(), nullable=False),
        sa.Column("resource_type", sa.TEXT(), nullable=False),
        sa.Column("resource_id", sa.TEXT()),
        sa.Column("details", sa.JSON()),
        sa.Column("success", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("error_message", sa.TEXT()),
        sa.Column("created_at", TZ, nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_audit_logs_user", "audit_logs", ["user_id"])
    op.create_index("idx_audit_logs_action", "audit_logs", ["action"])
    op.create_index("idx_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "plans",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("name", sa.TEXT(), nullable=False),
        sa.Column("description", sa.TEXT()),
        sa.Column("price_monthly", sa.BIGINT(), nullable=False, server_default="0"),
        sa.Column("price_yearly", sa.BIGINT(), nullable=False, server_default="0"),
        sa.Column("max_locations", sa.INTEGER(), nullable=False, server_default="-1"),
        sa.Column("max_users", sa.INTEGER(), nullable=False, server_default="-1"),
        sa.Column("max_inspections_per_month", sa.INTEGER(), nullable=False, server_default="-1"),
        sa.Column("features", sa.JSON()),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.INTEGER(), nullable=False, server_default="0"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("organization_id", sa.TEXT(), nullable=False),
        sa.Column("plan_id", sa.TEXT(), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", sa.TEXT(), nullable=False, server_default="pending"),
        sa.Column("billing_cycle", sa.TEXT(), nullable=False, server_default="monthly"),
        sa.Column("current_period_start", TZ),
        sa.Column("current_period_end", TZ),
        sa.Column("cancel_at_period_end", sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("idx_subscriptions_organization", "subscriptions", ["organization_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.TEXT(), primary_key=True),
        sa.Column("subscription_id", sa.TEXT(), sa.ForeignKey("subscriptions.id"), nullable=False),
        sa.Column("organization_id", sa.TEXT(), nullable=False),
        sa.Column("order_id", sa.TEXT(), nullable=False, unique=True),
        sa.Column("amount", sa.FLOAT(), nullable=False),
        sa.Column("status", sa.TEXT(), nullable=False, server_default="pending"),
        sa.Column("transaction_id", sa.TEXT()),
        sa.Column("payment_type", sa.TEXT()),
        sa.Column("transaction_time", sa.TEXT()),
        sa.Column("settlement_time", sa.TEXT()),
        sa.Column("midtrans_response", sa.JSON()),
        *_timestamps(),
    )
    op.create_index(
        "idx_payments_organization_created", "payments", ["organization_id", "created_at"]
    )

    op.create_table(
        "webhook_dedup_events",
        sa.Column("id", sa.BIGINT(), sa.Identity(), primary_key=True),
        sa.Column("provider", sa.TEXT(), nullable=False),
        sa.Column("dedup_key", sa.TEXT(), nullable=False),
        sa.Column("first_seen_at", TZ, nullable=False, server_default=sa.text("now()")),
        sa.Column("last_seen_at", TZ),
        sa.Column("status", sa.TEXT(), nullable=False, server_default="processing"),
        sa.Column("request_hash", sa.TEXT()),
        sa.UniqueConstraint("provider", "dedup_key", name="uq_webhook_dedup_events"),
    )
    op.create_index("idx_webhook_dedup_status", "webhook_dedup_events", ["status"])

    for table in TABLES:
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;")


def downgrade() -> None:
    for table in reversed(TABLES):
        op.drop_table(table)
