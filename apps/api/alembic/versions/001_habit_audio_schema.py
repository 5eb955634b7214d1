"""habit schedule, narrators and habit audio clips

Revision ID: 001
Revises:
Create Date: 2025-01-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Habit schedule (read-only for the audio pipeline)
    op.create_table(
        'default_schedule',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event', sa.Text(), nullable=False),
        sa.Column('start_time', sa.Text(), nullable=True),
        sa.Column('end_time', sa.Text(), nullable=True),
    )
    op.create_table(
        'day_specific_schedule',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event', sa.Text(), nullable=False),
        sa.Column('day_of_week', sa.Text(), nullable=False),
        sa.Column('start_time', sa.Text(), nullable=True),
        sa.Column('end_time', sa.Text(), nullable=True),
    )
    op.create_index('ix_day_specific_schedule_day_of_week', 'day_specific_schedule', ['day_of_week'])

    # Narrators
    op.create_table(
        'narrators',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
        sa.Column('role_prompt', sa.Text(), nullable=False),
        sa.Column('style_prompt', sa.Text(), nullable=True),
        sa.Column('voice', sa.Text(), nullable=True),
        sa.Column('sample_path', sa.Text(), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=False, server_default='0.7'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        'narrator_samples',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Generated clips, one row per (habit, type, date)
    op.create_table(
        'habit_audio_clips',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('habit_id', sa.Integer(), nullable=False),
        sa.Column('habit_type', sa.Text(), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('narrator_id', sa.Integer(), nullable=False),
        sa.Column('script', sa.Text(), nullable=False, server_default=''),
        sa.Column('audio_path', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['narrator_id'], ['narrators.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('habit_id', 'habit_type', 'scheduled_date', name='uq_habit_audio_clip_key'),
        sa.CheckConstraint("habit_type IN ('default', 'day-specific')", name='ck_habit_audio_clip_habit_type'),
        sa.CheckConstraint("status IN ('ready', 'failed')", name='ck_habit_audio_clip_status'),
    )
    op.create_index(
        'ix_habit_audio_clips_date_type_id',
        'habit_audio_clips',
        ['scheduled_date', 'habit_type', 'habit_id'],
    )


def downgrade() -> None:
    op.drop_index('ix_habit_audio_clips_date_type_id', table_name='habit_audio_clips')
    op.drop_table('habit_audio_clips')
    op.drop_table('narrator_samples')
    op.drop_table('narrators')
    op.drop_index('ix_day_specific_schedule_day_of_week', table_name='day_specific_schedule')
    op.drop_table('day_specific_schedule')
    op.drop_table('default_schedule')
