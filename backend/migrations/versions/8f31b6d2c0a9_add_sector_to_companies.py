"""add sector to companies

Revision ID: 8f31b6d2c0a9
Revises: 5d2a9c1e7b40
Create Date: 2025-06-09 16:03:17.584201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8f31b6d2c0a9'
down_revision: Union[str, Sequence[str], None] = '5d2a9c1e7b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add sector column used by the seed list and directory filter."""
    op.add_column(
        "companies",
        sa.Column("sector", sa.String(), nullable=True),
    )


def downgrade() -> None:
    """Remove sector column from companies table."""
    op.drop_column("companies", "sector")
