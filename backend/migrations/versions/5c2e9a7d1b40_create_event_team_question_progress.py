"""create event, team, question and team_progress tables

Revision ID: 5c2e9a7d1b40
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'event' not in existing_tables:
        op.create_table(
            'event',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('start_time', sa.DateTime(), nullable=True),
            sa.Column('use_random_order', sa.Boolean(), nullable=False, server_default=sa.false()),
        )

    if 'team' not in existing_tables:
        op.create_table(
            'team',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('event_id', sa.Integer(), sa.ForeignKey('event.id', ondelete='CASCADE'), nullable=False),
            sa.Column('logo_url', sa.String(length=512), nullable=True),
            sa.UniqueConstraint('name', 'event_id', name='uq_team_name_event'),
        )
        op.create_index('ix_team_event_id', 'team', ['event_id'])

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('event_id', sa.Integer(), sa.ForeignKey('event.id', ondelete='CASCADE'), nullable=False),
            sa.Column('title', sa.String(length=256), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('image_path', sa.String(length=512), nullable=True),
            sa.Column('difficulty', sa.String(length=16), nullable=False, server_default='medium'),
            sa.Column('solution', sa.String(length=256), nullable=False),
            sa.Column('tip_1', sa.Text(), nullable=True),
            sa.Column('tip_2', sa.Text(), nullable=True),
            sa.Column('tip_3', sa.Text(), nullable=True),
            sa.Column('time_limit_seconds', sa.Integer(), nullable=False, server_default='300'),
            sa.Column('order_index', sa.Integer(), nullable=True),
        )
        op.create_index('ix_question_event_id', 'question', ['event_id'])

    if 'team_progress' not in existing_tables:
        op.create_table(
            'team_progress',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='CASCADE'), nullable=False),
            sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id', ondelete='CASCADE'), nullable=False),
            sa.Column('attempt_1', sa.String(length=256), nullable=True),
            sa.Column('attempt_2', sa.String(length=256), nullable=True),
            sa.Column('attempt_3', sa.String(length=256), nullable=True),
            sa.Column('used_tip', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('correct', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('completed_reason', sa.String(length=32), nullable=True),
            sa.Column('time_started', sa.DateTime(), nullable=True),
            sa.Column('time_answered', sa.DateTime(), nullable=True),
            sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint('team_id', 'question_id', name='uq_team_progress_team_question'),
        )


def downgrade():
    op.drop_table('team_progress')
    op.drop_index('ix_question_event_id', table_name='question')
    op.drop_table('question')
    op.drop_index('ix_team_event_id', table_name='team')
    op.drop_table('team')
    op.drop_table('event')
