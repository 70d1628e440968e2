"""Initial migration - create the students table

Revision ID: 001_initial
Revises: None
Create Date: 2026-09-28

Creates the single collection of the attendance dashboard:
- students: profile fields, the JSON array of 20 week documents and
  the revision counter used for optimistic concurrency
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('grade', sa.Text(), nullable=False),
        sa.Column('school', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=False),
        sa.Column('parents_phone', sa.Text(), nullable=False),
        sa.Column('main_center', sa.Text(), nullable=False),
        sa.Column('center', sa.Text(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('weeks', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('revision', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # Dashboard filters by center
    op.create_index('ix_students_main_center', 'students', ['main_center'])


def downgrade() -> None:
    op.drop_index('ix_students_main_center', table_name='students')
    op.drop_table('students')
