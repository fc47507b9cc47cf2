"""unique (user_id, company_id) on company_members

Revision ID: e4c7a1f95b36
Revises: 8f31b6d2c0a9
Create Date: 2025-06-20

Concurrent joins could insert the same pair twice before this constraint
existed. Duplicates are collapsed to the oldest row first.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = 'e4c7a1f95b36'
down_revision: Union[str, None] = '8f31b6d2c0a9'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        DELETE FROM company_members cm
        USING (
            SELECT id,
                   ROW_NUMBER() OVER (
                       PARTITION BY user_id, company_id
                       ORDER BY joined_at ASC, id ASC
                   ) AS rn
            FROM company_members
        ) ranked
        WHERE cm.id = ranked.id
          AND ranked.rn > 1
        """
    )
    op.create_unique_constraint(
        'uq_company_members_user_company',
        'company_members',
        ['user_id', 'company_id'],
    )


def downgrade() -> None:
    op.drop_constraint('uq_company_members_user_company', 'company_members', type_='unique')
