"""create_application_tables

Revision ID: a1c3e5f7b9d1
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d1'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create applications and the per-platform configuration tables."""
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('platform', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("platform IN ('kubernetes', 'opennebula')", name='ck_applications_platform'),
        sqlite_autoincrement=True,
    )

    op.create_table(
        'kubernetes_configs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('application_id', sa.Integer(), sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('namespace', sa.String(length=253), nullable=False),
        sa.Column('deployment', sa.String(length=253), nullable=False),
        sa.Column('kubeconfig', sa.Text(), nullable=False),
        sa.UniqueConstraint('application_id'),
    )

    op.create_table(
        'opennebula_configs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('application_id', sa.Integer(), sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('login', sa.String(length=255), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Integer(), nullable=False),
        sa.Column('template', sa.Integer(), nullable=False),
        sa.Column('vmgroup', sa.Integer(), nullable=False),
        sa.UniqueConstraint('application_id'),
    )


def downgrade() -> None:
    """Drop all registration tables."""
    op.drop_table('opennebula_configs')
    op.drop_table('kubernetes_configs')
    op.drop_table('applications')
