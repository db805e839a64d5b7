"""add receipt parse cache to transactions

Revision ID: c83f4a1e6b20
Revises: 5b1e07c2d9a4
Create Date: 2026-02-03 18:22:51.604917

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c83f4a1e6b20'
down_revision: Union[str, Sequence[str], None] = '5b1e07c2d9a4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('transactions', sa.Column('receipt_parsed', sa.JSON(), nullable=True))
    op.add_column('transactions', sa.Column('receipt_parsed_at', sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_column('transactions', 'receipt_parsed_at')
    op.drop_column('transactions', 'receipt_parsed')
