"""initial_shopsync_schema

Revision ID: 3b9e1c7d2a40
Revises:
Create Date: 2026-10-16 09:12:47.518302

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7d2a40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _shop_fk() -> list[sa.SchemaItem]:
    return [
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "shops",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("webhook_token", sa.String(), nullable=False),
        sa.Column("autoflow_domain", sa.String(), nullable=True),
        sa.Column("autoflow_api_key", sa.String(), nullable=True),
        sa.Column("autoflow_api_password", sa.String(), nullable=True),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("webhook_token"),
    )
    op.create_table(
        "customers",
        *_shop_fk(),
        sa.Column("external_id", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("last_vin", sa.String(), nullable=True),
        sa.Column("last_ro", sa.String(), nullable=True),
        sa.Column("last_mileage", sa.Integer(), nullable=True),
        sa.Column("last_status", sa.String(), nullable=True),
        sa.Column("last_event_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_shop_id", "customers", ["shop_id"])
    op.create_index(
        "ix_customers_shop_external_id", "customers", ["shop_id", "external_id"]
    )
    op.create_index("ix_customers_shop_email", "customers", ["shop_id", "email"])
    op.create_index("ix_customers_shop_phone", "customers", ["shop_id", "phone"])

    op.create_table(
        "vehicles",
        *_shop_fk(),
        sa.Column("vin", sa.String(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("customer_external_id", sa.String(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("make", sa.String(), nullable=True),
        sa.Column("model", sa.String(), nullable=True),
        sa.Column("license", sa.String(), nullable=True),
        sa.Column("last_mileage", sa.Integer(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "vin", name="uq_vehicle_shop_vin"),
    )
    op.create_index("ix_vehicles_shop_id", "vehicles", ["shop_id"])

    op.create_table(
        "repair_orders",
        *_shop_fk(),
        sa.Column("ro_number", sa.String(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("customer_external_id", sa.String(), nullable=True),
        sa.Column("vehicle_id", sa.Uuid(), nullable=True),
        sa.Column("vin", sa.String(), nullable=True),
        sa.Column("mileage", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "ro_number", name="uq_repair_order_shop_ro"),
    )
    op.create_index("ix_repair_orders_shop_id", "repair_orders", ["shop_id"])
    op.create_index("ix_repair_orders_vin", "repair_orders", ["vin"])

    op.create_table(
        "webhook_events",
        *_shop_fk(),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("event_name", sa.String(), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("raw", sa.Text(), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhook_events_shop_id", "webhook_events", ["shop_id"])

    op.create_table(
        "dvi_snapshots",
        *_shop_fk(),
        sa.Column("ro_number", sa.String(), nullable=False),
        sa.Column("fetched_at", sa.DateTime(), nullable=True),
        sa.Column("ok", sa.Boolean(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("vin", sa.String(), nullable=True),
        sa.Column("mileage", sa.Integer(), nullable=True),
        sa.Column("sheet_name", sa.String(), nullable=True),
        sa.Column("completed_at", sa.String(), nullable=True),
        sa.Column("advisor", sa.String(), nullable=True),
        sa.Column("technician", sa.String(), nullable=True),
        sa.Column("pdf_url", sa.String(), nullable=True),
        sa.Column("shop_url", sa.String(), nullable=True),
        sa.Column("customer_url", sa.String(), nullable=True),
        sa.Column(
            "categories", postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.Column("raw", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "severities", postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "ro_number", name="uq_dvi_snapshot_shop_ro"),
    )
    op.create_index("ix_dvi_snapshots_shop_id", "dvi_snapshots", ["shop_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_dvi_snapshots_shop_id", table_name="dvi_snapshots")
    op.drop_table("dvi_snapshots")
    op.drop_index("ix_webhook_events_shop_id", table_name="webhook_events")
    op.drop_table("webhook_events")
    op.drop_index("ix_repair_orders_vin", table_name="repair_orders")
    op.drop_index("ix_repair_orders_shop_id", table_name="repair_orders")
    op.drop_table("repair_orders")
    op.drop_index("ix_vehicles_shop_id", table_name="vehicles")
    op.drop_table("vehicles")
    op.drop_index("ix_customers_shop_phone", table_name="customers")
    op.drop_index("ix_customers_shop_email", table_name="customers")
    op.drop_index("ix_customers_shop_external_id", table_name="customers")
    op.drop_index("ix_customers_shop_id", table_name="customers")
    op.drop_table("customers")
    op.drop_table("shops")
