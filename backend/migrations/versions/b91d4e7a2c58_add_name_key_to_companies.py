"""add name_key to companies

Revision ID: b91d4e7a2c58
Revises: e4c7a1f95b36
Create Date: 2025-07-02 10:41:08.112907

Database lower()/trim() disagree with Python on non-ASCII case folding and on
whitespace other than spaces, so the key is computed in Python and stored.
"""
from typing import Sequence, Union
import unicodedata

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b91d4e7a2c58'
down_revision: Union[str, Sequence[str], None] = 'e4c7a1f95b36'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _name_key(name):
    # Frozen copy of app.models.company.name_key at this revision
    return unicodedata.normalize("NFKC", name or "").strip().casefold()


def upgrade() -> None:
    """Add and backfill companies.name_key, then index it."""
    op.add_column("companies", sa.Column("name_key", sa.String(), nullable=True))

    bind = op.get_bind()
    companies = sa.table(
        "companies",
        sa.column("id", sa.Uuid()),
        sa.column("name", sa.String()),
        sa.column("name_key", sa.String()),
    )
    rows = bind.execute(sa.select(companies.c.id, companies.c.name)).all()
    for company_id, name in rows:
        bind.execute(
            companies.update()
            .where(companies.c.id == company_id)
            .values(name_key=_name_key(name))
        )

    op.alter_column("companies", "name_key", nullable=False)
    op.create_index("ix_companies_name_key", "companies", ["name_key"])


def downgrade() -> None:
    """Remove name_key from companies table."""
    op.drop_index("ix_companies_name_key", table_name="companies")
    op.drop_column("companies", "name_key")
