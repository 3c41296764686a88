"""initial hyrox schema: workouts, workout_logs, user_profiles

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'workouts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('date_generated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('workout_details', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('source', sa.Text(), nullable=False, server_default='generated'),
        sa.Column('workout_name', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'completed', 'skipped')", name='ck_workout_status'),
        sa.CheckConstraint("source IN ('generated', 'ai', 'user_created')", name='ck_workout_source'),
    )
    op.create_index('ix_workouts_user_id', 'workouts', ['user_id'])
    op.create_index('ix_workouts_user_created', 'workouts', ['user_id', 'created_at'])

    op.create_table(
        'workout_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('workout_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('date_completed', sa.DateTime(timezone=True), nullable=False),
        sa.Column('performance_data', postgresql.JSONB(), nullable=True),
        sa.Column('overall_time', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workout_id'], ['workouts.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_workout_logs_workout_id', 'workout_logs', ['workout_id'])
    op.create_index('ix_workout_logs_user_id', 'workout_logs', ['user_id'])
    op.create_index('ix_workout_logs_user_completed', 'workout_logs', ['user_id', 'date_completed'])

    op.create_table(
        'user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Text(), nullable=False, unique=True),
        sa.Column('fitness_level', sa.Text(), nullable=False, server_default='beginner'),
        sa.Column('goals', sa.Text(), nullable=True),
        sa.Column('default_mood', sa.Text(), nullable=True),
        sa.Column('default_intensity', sa.Text(), nullable=True),
        sa.Column('default_duration', sa.Integer(), nullable=True),
        sa.Column('excluded_stations', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('user_profiles')
    op.drop_index('ix_workout_logs_user_completed', table_name='workout_logs')
    op.drop_index('ix_workout_logs_user_id', table_name='workout_logs')
    op.drop_index('ix_workout_logs_workout_id', table_name='workout_logs')
    op.drop_table('workout_logs')
    op.drop_index('ix_workouts_user_created', table_name='workouts')
    op.drop_index('ix_workouts_user_id', table_name='workouts')
    op.drop_table('workouts')
