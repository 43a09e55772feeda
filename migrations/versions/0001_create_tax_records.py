"""Create the tax_records table

Revision ID: 0001
Revises:
Create Date: 2024-06-14 12:00:00.000000+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the append-only tax_records table and its lookup index."""
    op.create_table(
        "tax_records",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("municipality", sa.String(length=255), nullable=False),
        sa.Column("period_type", sa.Integer(), nullable=False),
        sa.Column("date_start", sa.Date(), nullable=False),
        sa.Column("date_end", sa.Date(), nullable=False),
        sa.Column("tax_rate", sa.Float(), nullable=False),
        sa.CheckConstraint(
            "period_type BETWEEN 1 AND 4",
            name=op.f("ck_tax_records_period_type_range"),
        ),
        sa.CheckConstraint(
            "date_start <= date_end", name=op.f("ck_tax_records_date_range")
        ),
        sa.CheckConstraint(
            "tax_rate >= 0", name=op.f("ck_tax_records_tax_rate_non_negative")
        ),
        sa.CheckConstraint(
            "length(municipality) > 0",
            name=op.f("ck_tax_records_municipality_not_empty"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tax_records")),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_tax_records_municipality_period_type",
        "tax_records",
        ["municipality", "period_type"],
        unique=False,
    )


def downgrade() -> None:
    """Drop the tax_records table."""
    op.drop_index("ix_tax_records_municipality_period_type", table_name="tax_records")
    op.drop_table("tax_records")
