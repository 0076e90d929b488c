"""Orders and users tables plus the insert notification trigger.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

# Keep in sync with Settings.ORDER_EVENTS_CHANNEL
CHANNEL = "order_inserts"

# Only the id is published: pg_notify rejects payloads over 8000 bytes and
# that error would abort the INSERT.  Listeners load the committed row.
NOTIFY_FUNCTION = f"""
CREATE OR REPLACE FUNCTION orders_notify_insert() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(
        '{CHANNEL}',
        json_build_object('id', NEW.id)::text
    );
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

NOTIFY_TRIGGER = """
CREATE TRIGGER orders_notify_insert
AFTER INSERT ON orders
FOR EACH ROW EXECUTE FUNCTION orders_notify_insert();
"""


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("checks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_credits_used_today", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("file_name", sa.String(512), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("payment_source", sa.String(20), nullable=True),
        sa.Column("user_file_url", sa.Text(), nullable=True),
        sa.Column("user_file_filename", sa.String(512), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("ai_report_url", sa.Text(), nullable=True),
        sa.Column("similarity_report_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('pending', 'failed', 'completed')",
            name="ck_orders_status",
        ),
        sa.CheckConstraint(
            "(status = 'failed') = (failure_reason IS NOT NULL)",
            name="ck_orders_failure_reason",
        ),
        sa.CheckConstraint(
            "(status = 'completed') = "
            "(ai_report_url IS NOT NULL AND similarity_report_url IS NOT NULL)",
            name="ck_orders_report_urls",
        ),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.execute(NOTIFY_FUNCTION)
    op.execute(NOTIFY_TRIGGER)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS orders_notify_insert ON orders")
    op.execute("DROP FUNCTION IF EXISTS orders_notify_insert()")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("users")
