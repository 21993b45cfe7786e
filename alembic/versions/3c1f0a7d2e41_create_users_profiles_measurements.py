"""create users, user_profile and measurements

Revision ID: 3c1f0a7d2e41
Revises:
Create Date: 2026-10-18 10:12:44.201337

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1f0a7d2e41'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('is_anonymous', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_table(
        'user_profile',
        sa.Column('profile_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('surgery_date', sa.Date(), nullable=True),
        sa.Column('injured_knee', sa.String(length=10), nullable=True),
        sa.Column('injury_type', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('profile_id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_table(
        'measurements',
        sa.Column('measurement_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('angle', sa.Integer(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('week_post_op', sa.Integer(), nullable=False),
        sa.Column('photo_url', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('measurement_id')
    )
    op.create_index('ix_measurements_user_id', 'measurements', ['user_id'], unique=False)


def downgrade():
    op.drop_index('ix_measurements_user_id', table_name='measurements')
    op.drop_table('measurements')
    op.drop_table('user_profile')
    op.drop_table('users')
