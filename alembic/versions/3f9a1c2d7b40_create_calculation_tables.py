"""create calculation, price grid and markup setting tables

Revision ID: 3f9a1c2d7b40
Revises:
Create Date: 2026-10-12 09:41:05.118204

Base migration. Tables may already exist when the database was created by
Base.metadata.create_all(), so every step is idempotent.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def _column_exists(table_name, column_name):
    """Check if a column already exists in the table."""
    bind = op.get_bind()
    insp = inspect(bind)
    columns = [c["name"] for c in insp.get_columns(table_name)]
    return column_name in columns


def upgrade() -> None:
    if not _table_exists("treatment_calculations"):
        op.create_table(
            "treatment_calculations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("item_key", sa.String(), nullable=False),
            sa.Column("parent_key", sa.String(), nullable=True),
            sa.Column("linear_meters", sa.Float(), nullable=False),
            sa.Column("widths_required", sa.Integer(), nullable=False),
            sa.Column("fabric_cost", sa.Float(), nullable=False),
            sa.Column("lining_cost", sa.Float(), nullable=True),
            sa.Column("heading_cost", sa.Float(), nullable=True),
            sa.Column("manufacturing_cost", sa.Float(), nullable=False),
            sa.Column("options_cost", sa.Float(), nullable=False),
            sa.Column("labor_cost", sa.Float(), nullable=True),
            sa.Column("total_cost", sa.Float(), nullable=False),
            sa.Column("total_selling", sa.Float(), nullable=False),
            sa.Column("markup_percentage", sa.Float(), nullable=False),
            sa.Column("markup_source", sa.String(), nullable=False),
            sa.Column("margin_band", sa.String(), nullable=True),
            sa.Column("algorithm_version", sa.String(), nullable=False),
            sa.Column("revision", sa.Integer(), nullable=True),
            sa.Column("inputs_json", sa.JSON(), nullable=True),
            sa.Column("outputs_json", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_treatment_calculations_id", "treatment_calculations", ["id"])
        op.create_index("ix_treatment_calculations_item_key", "treatment_calculations", ["item_key"], unique=True)
        op.create_index("ix_treatment_calculations_parent_key", "treatment_calculations", ["parent_key"])
    else:
        # Snapshots written before labor and lining were tracked
        for col_name, col_type in [
            ("lining_cost", sa.Float()),
            ("heading_cost", sa.Float()),
            ("labor_cost", sa.Float()),
            ("margin_band", sa.String()),
            ("revision", sa.Integer()),
        ]:
            if not _column_exists("treatment_calculations", col_name):
                op.add_column("treatment_calculations", sa.Column(col_name, col_type, nullable=True))

    if not _table_exists("price_grids"):
        op.create_table(
            "price_grids",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("grid_json", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_price_grids_id", "price_grids", ["id"])

    if not _table_exists("markup_settings"):
        op.create_table(
            "markup_settings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("category", sa.String(), nullable=False, unique=True),
            sa.Column("markup_pct", sa.Float(), nullable=True),
            sa.Column("tiers_json", sa.JSON(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_markup_settings_id", "markup_settings", ["id"])


def downgrade() -> None:
    for table in ("markup_settings", "price_grids", "treatment_calculations"):
        if _table_exists(table):
            op.drop_table(table)
