"""create_pricing_tables

Revision ID: 1a0e5c7d9b21
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "1a0e5c7d9b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _price_columns(prefix: str, grades: Sequence[str]) -> list[sa.Column]:
    return [sa.Column(f"{prefix}_{g}", sa.Float(), nullable=True) for g in grades]


def upgrade() -> None:
    all_grades = ("swap", "grade_a", "grade_b", "grade_c", "grade_d", "doa")
    override_grades = all_grades[1:]

    op.create_table(
        "pricing_data",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("model", sa.String(length=200), nullable=False),
        sa.Column("network", sa.String(length=50), nullable=False),
        sa.Column("device_type", sa.String(length=50), nullable=False),
        sa.Column("model_name", sa.String(length=100), nullable=False),
        sa.Column("storage", sa.String(length=20), nullable=False),
        sa.Column("series", sa.String(length=10), nullable=True),
        *_price_columns("price", all_grades),
        *_price_columns("offer", all_grades),
        sa.Column("offers_calculated_at", sa.DateTime(timezone=True), nullable=True),
        *_price_columns("override", override_grades),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("model", "network", name="uq_pricing_data_model_network"),
    )
    op.create_index(op.f("ix_pricing_data_model"), "pricing_data", ["model"], unique=False)
    op.create_index(op.f("ix_pricing_data_device_type"), "pricing_data", ["device_type"], unique=False)
    op.create_index(op.f("ix_pricing_data_model_name"), "pricing_data", ["model_name"], unique=False)
    op.create_index(op.f("ix_pricing_data_series"), "pricing_data", ["series"], unique=False)
    op.create_index(op.f("ix_pricing_data_last_updated"), "pricing_data", ["last_updated"], unique=False)
    op.create_index(op.f("ix_pricing_data_is_active"), "pricing_data", ["is_active"], unique=False)

    op.create_table(
        "pricing_update_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("records_added", sa.Integer(), nullable=False),
        sa.Column("records_updated", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pricing_update_logs_status"), "pricing_update_logs", ["status"], unique=False)
    op.create_index(op.f("ix_pricing_update_logs_created_at"), "pricing_update_logs", ["created_at"], unique=False)

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_settings_key"), "settings", ["key"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_settings_key"), table_name="settings")
    op.drop_table("settings")

    op.drop_index(op.f("ix_pricing_update_logs_created_at"), table_name="pricing_update_logs")
    op.drop_index(op.f("ix_pricing_update_logs_status"), table_name="pricing_update_logs")
    op.drop_table("pricing_update_logs")

    for column in ("is_active", "last_updated", "series", "model_name", "device_type", "model"):
        op.drop_index(op.f(f"ix_pricing_data_{column}"), table_name="pricing_data")
    op.drop_table("pricing_data")
