"""Seed the user and admin roles

Revision ID: 002
Revises: 001
Create Date: 2024-01-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


roles = sa.table('roles', sa.column('id', sa.Integer), sa.column('name', sa.String))


def upgrade() -> None:
    op.bulk_insert(roles, [
        {'name': 'user'},
        {'name': 'admin'},
    ])


def downgrade() -> None:
    op.execute(roles.delete().where(roles.c.name.in_(['user', 'admin'])))
