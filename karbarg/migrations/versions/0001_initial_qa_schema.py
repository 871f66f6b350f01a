"""initial Q&A quality schema

Revision ID: 0001_initial_qa_schema
Revises:
Create Date: 2025-11-02 09:14:52.118304

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from karbarg.migrations.util import get_uuid_type, get_timestamp_default


# revision identifiers, used by Alembic.
revision: str = '0001_initial_qa_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, Q&A, quality metric and settings tables."""
    uuid = get_uuid_type()
    now = get_timestamp_default()

    op.create_table('users',
        sa.Column('user_id', uuid, nullable=False),
        sa.Column('username', sa.String(length=80), nullable=False),
        sa.Column('full_name', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('qa_questions',
        sa.Column('question_id', uuid, nullable=False),
        sa.Column('author_id', uuid, nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('answers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['author_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('question_id'),
    )
    op.create_index('ix_qa_questions_author_id', 'qa_questions', ['author_id'], unique=False)
    op.create_index('ix_qa_questions_category', 'qa_questions', ['category'], unique=False)
    op.create_index('ix_qa_questions_hidden_created', 'qa_questions', ['is_hidden', 'created_at'], unique=False)

    op.create_table('qa_answers',
        sa.Column('answer_id', uuid, nullable=False),
        sa.Column('question_id', uuid, nullable=False),
        sa.Column('author_id', uuid, nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('helpful_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('not_helpful_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expert_badge_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('flag_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['question_id'], ['qa_questions.question_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('answer_id'),
    )
    op.create_index('ix_qa_answers_question_id', 'qa_answers', ['question_id'], unique=False)
    op.create_index('ix_qa_answers_author_id', 'qa_answers', ['author_id'], unique=False)
    op.create_index('ix_qa_answers_author_created', 'qa_answers', ['author_id', 'created_at'], unique=False)
    op.create_index(
        'uq_qa_answers_one_accepted_per_question',
        'qa_answers',
        ['question_id'],
        unique=True,
        sqlite_where=sa.text('is_accepted = 1'),
        postgresql_where=sa.text('is_accepted = true'),
    )

    op.create_table('qa_answer_quality_metrics',
        sa.Column('answer_id', uuid, nullable=False),
        sa.Column('aqs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('label', sa.String(length=10), nullable=False, server_default='NORMAL'),
        sa.Column('breakdown', sa.JSON(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['answer_id'], ['qa_answers.answer_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('answer_id'),
    )
    op.create_index('ix_qa_answer_quality_metrics_label', 'qa_answer_quality_metrics', ['label'], unique=False)
    op.create_index(
        'ix_qa_answer_quality_metrics_computed_at', 'qa_answer_quality_metrics', ['computed_at'], unique=False
    )

    op.create_table('qa_answer_reactions',
        sa.Column('reaction_id', uuid, nullable=False),
        sa.Column('answer_id', uuid, nullable=False),
        sa.Column('user_id', uuid, nullable=False),
        sa.Column('reaction_type', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['answer_id'], ['qa_answers.answer_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('reaction_id'),
        sa.UniqueConstraint('answer_id', 'user_id', name='uq_qa_answer_reactions_answer_user'),
    )
    op.create_index('ix_qa_answer_reactions_answer_id', 'qa_answer_reactions', ['answer_id'], unique=False)
    op.create_index('ix_qa_answer_reactions_user_id', 'qa_answer_reactions', ['user_id'], unique=False)

    op.create_table('qa_answer_flags',
        sa.Column('flag_id', uuid, nullable=False),
        sa.Column('answer_id', uuid, nullable=False),
        sa.Column('user_id', uuid, nullable=False),
        sa.Column('reason', sa.String(length=20), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['answer_id'], ['qa_answers.answer_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('flag_id'),
        sa.UniqueConstraint('answer_id', 'user_id', name='uq_qa_answer_flags_answer_user'),
    )
    op.create_index('ix_qa_answer_flags_answer_id', 'qa_answer_flags', ['answer_id'], unique=False)

    op.create_table('qa_settings',
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('value_type', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_by', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('key'),
    )

    op.create_table('microcopy_definitions',
        sa.Column('microcopy_id', sa.String(length=100), nullable=False),
        sa.Column('trigger_rule', sa.String(length=100), nullable=False),
        sa.Column('text_fa', sa.Text(), nullable=False),
        sa.Column('target_segment', sa.String(length=20), nullable=False, server_default='all'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('cooldown_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('microcopy_id'),
    )

    op.create_table('microcopy_events',
        sa.Column('event_id', uuid, nullable=False),
        sa.Column('microcopy_id', sa.String(length=100), nullable=False),
        sa.Column('trigger_rule_id', sa.String(length=100), nullable=True),
        sa.Column('user_id', uuid, nullable=True),
        sa.Column('event_type', sa.String(length=20), nullable=False),
        sa.Column('page_url', sa.String(length=500), nullable=True),
        sa.Column('question_id', uuid, nullable=True),
        sa.Column('user_segment', sa.String(length=20), nullable=True),
        sa.Column('user_answer_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('context', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('event_id'),
    )
    op.create_index('ix_microcopy_events_user_id', 'microcopy_events', ['user_id'], unique=False)
    op.create_index(
        'ix_microcopy_events_microcopy_type_created',
        'microcopy_events',
        ['microcopy_id', 'event_type', 'created_at'],
        unique=False,
    )
    op.create_index('ix_microcopy_events_created', 'microcopy_events', ['created_at'], unique=False)

    op.create_table('microcopy_actions',
        sa.Column('action_id', uuid, nullable=False),
        sa.Column('event_id', uuid, nullable=False),
        sa.Column('user_id', uuid, nullable=True),
        sa.Column('action_type', sa.String(length=30), nullable=False),
        sa.Column('answer_id', uuid, nullable=True),
        sa.Column('question_id', uuid, nullable=True),
        sa.Column('reputation_delta', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_to_action_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['event_id'], ['microcopy_events.event_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('action_id'),
    )
    op.create_index('ix_microcopy_actions_event_id', 'microcopy_actions', ['event_id'], unique=False)
    op.create_index('ix_microcopy_actions_created', 'microcopy_actions', ['created_at'], unique=False)

    op.create_table('microcopy_cooldowns',
        sa.Column('user_id', uuid, nullable=False),
        sa.Column('microcopy_id', sa.String(length=100), nullable=False),
        sa.Column('last_shown_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('show_count', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'microcopy_id'),
    )

    op.create_table('career_level_progress',
        sa.Column('progress_id', uuid, nullable=False),
        sa.Column('user_id', uuid, nullable=False),
        sa.Column('level_id', sa.String(length=50), nullable=False),
        sa.Column('completed_task_ids', sa.JSON(), nullable=False),
        sa.Column('in_progress_task_id', sa.String(length=50), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('progress_id'),
        sa.UniqueConstraint('user_id', 'level_id', name='uq_career_level_progress_user_level'),
    )
    op.create_index('ix_career_level_progress_user_id', 'career_level_progress', ['user_id'], unique=False)


def downgrade() -> None:
    """Drop every table created in upgrade()."""
    op.drop_index('ix_career_level_progress_user_id', table_name='career_level_progress')
    op.drop_table('career_level_progress')
    op.drop_table('microcopy_cooldowns')
    op.drop_index('ix_microcopy_actions_created', table_name='microcopy_actions')
    op.drop_index('ix_microcopy_actions_event_id', table_name='microcopy_actions')
    op.drop_table('microcopy_actions')
    op.drop_index('ix_microcopy_events_created', table_name='microcopy_events')
    op.drop_index('ix_microcopy_events_microcopy_type_created', table_name='microcopy_events')
    op.drop_index('ix_microcopy_events_user_id', table_name='microcopy_events')
    op.drop_table('microcopy_events')
    op.drop_table('microcopy_definitions')
    op.drop_table('qa_settings')
    op.drop_index('ix_qa_answer_flags_answer_id', table_name='qa_answer_flags')
    op.drop_table('qa_answer_flags')
    op.drop_index('ix_qa_answer_reactions_user_id', table_name='qa_answer_reactions')
    op.drop_index('ix_qa_answer_reactions_answer_id', table_name='qa_answer_reactions')
    op.drop_table('qa_answer_reactions')
    op.drop_index('ix_qa_answer_quality_metrics_computed_at', table_name='qa_answer_quality_metrics')
    op.drop_index('ix_qa_answer_quality_metrics_label', table_name='qa_answer_quality_metrics')
    op.drop_table('qa_answer_quality_metrics')
    op.drop_index('uq_qa_answers_one_accepted_per_question', table_name='qa_answers')
    op.drop_index('ix_qa_answers_author_created', table_name='qa_answers')
    op.drop_index('ix_qa_answers_author_id', table_name='qa_answers')
    op.drop_index('ix_qa_answers_question_id', table_name='qa_answers')
    op.drop_table('qa_answers')
    op.drop_index('ix_qa_questions_hidden_created', table_name='qa_questions')
    op.drop_index('ix_qa_questions_category', table_name='qa_questions')
    op.drop_index('ix_qa_questions_author_id', table_name='qa_questions')
    op.drop_table('qa_questions')
    op.drop_table('users')
