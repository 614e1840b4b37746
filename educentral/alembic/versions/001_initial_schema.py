"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2025-01-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='student'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'topics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('icon', sa.String(50)),
        sa.Column('color', sa.String(30)),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('topic_id', sa.Integer(), sa.ForeignKey('topics.id', name='fk_quizzes_topic_id_topics'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('level', sa.String(20), nullable=False),
        sa.Column('total_questions', sa.Integer(), server_default='10'),
        sa.Column('time_limit', sa.Integer()),
        sa.Column('passing_score', sa.Integer(), server_default='70'),
        sa.Column('points_per_question', sa.Integer(), server_default='10'),
        sa.Column('is_published', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_quizzes_topic_id', 'quizzes', ['topic_id'])

    op.create_table(
        'tests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('subject', sa.String(100), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', name='fk_tests_created_by_users')),
        sa.Column('is_published', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'quiz_questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', name='fk_quiz_questions_quiz_id_quizzes'), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.Text(), nullable=False),
        sa.Column('explanation', sa.Text()),
        sa.Column('difficulty', sa.String(20), server_default='medium'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('test_id', sa.Integer(), sa.ForeignKey('tests.id', name='fk_questions_test_id_tests'), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON()),
        sa.Column('correct_answer', sa.Text()),
        sa.Column('points', sa.Integer(), server_default='1'),
        sa.Column('time_limit', sa.Integer()),
        sa.Column('ai_criteria', sa.JSON()),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_questions_test_id', 'questions', ['test_id'])

    op.create_table(
        'test_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('test_id', sa.Integer(), sa.ForeignKey('tests.id', name='fk_test_attempts_test_id_tests'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_test_attempts_user_id_users'), nullable=False),
        sa.Column('started_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('total_score', sa.Float()),
        sa.Column('max_score', sa.Float()),
        sa.Column('time_spent', sa.Integer()),
        sa.Column('ai_overall_rating', sa.Integer()),
        sa.Column('status', sa.String(20), server_default='in_progress'),
    )
    op.create_index('ix_test_attempts_test_id', 'test_attempts', ['test_id'])
    op.create_index('ix_test_attempts_user_id', 'test_attempts', ['user_id'])

    op.create_table(
        'answers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('attempt_id', sa.Integer(), sa.ForeignKey('test_attempts.id', name='fk_answers_attempt_id_test_attempts'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('questions.id', name='fk_answers_question_id_questions'), nullable=False),
        sa.Column('answer_type', sa.String(20), nullable=False),
        sa.Column('answer_data', sa.JSON()),
        sa.Column('score', sa.Float()),
        sa.Column('max_score', sa.Float()),
        sa.Column('ai_assessment', sa.JSON()),
        sa.Column('time_spent', sa.Integer()),
        sa.Column('submitted_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_answers_attempt_id', 'answers', ['attempt_id'])

    op.create_table(
        'learning_modules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('total_lessons', sa.Integer(), server_default='0'),
        sa.Column('estimated_time', sa.Integer()),
        sa.Column('xp_reward', sa.Integer(), server_default='100'),
        sa.Column('is_published', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'lessons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('learning_modules.id', name='fk_lessons_module_id_learning_modules'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text()),
        sa.Column('lesson_type', sa.String(20), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('xp_reward', sa.Integer(), server_default='50'),
        sa.Column('unlock_condition', sa.JSON()),
    )
    op.create_index('ix_lessons_module_id', 'lessons', ['module_id'])

    op.create_table(
        'user_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_user_progress_user_id_users'), nullable=False),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('learning_modules.id', name='fk_user_progress_module_id_learning_modules'), nullable=False),
        sa.Column('lesson_id', sa.Integer(), sa.ForeignKey('lessons.id', name='fk_user_progress_lesson_id_lessons')),
        sa.Column('is_completed', sa.Boolean(), server_default=sa.false()),
        sa.Column('score', sa.Integer()),
        sa.Column('time_spent', sa.Integer()),
        sa.Column('completed_at', sa.DateTime()),
    )
    op.create_index('ix_user_progress_user_id', 'user_progress', ['user_id'])

    op.create_table(
        'quiz_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', name='fk_quiz_attempts_quiz_id_quizzes'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_quiz_attempts_user_id_users'), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('time_spent', sa.Integer()),
        sa.Column('completed_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('answers', sa.JSON()),
    )
    op.create_index('ix_quiz_attempts_quiz_id', 'quiz_attempts', ['quiz_id'])
    op.create_index('ix_quiz_attempts_user_id', 'quiz_attempts', ['user_id'])

    op.create_table(
        'topic_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_topic_progress_user_id_users'), nullable=False),
        sa.Column('topic_id', sa.Integer(), sa.ForeignKey('topics.id', name='fk_topic_progress_topic_id_topics'), nullable=False),
        sa.Column('current_level', sa.String(20), server_default='beginner'),
        sa.Column('total_points', sa.Integer(), server_default='0'),
        sa.Column('quizzes_completed', sa.Integer(), server_default='0'),
        sa.Column('best_score', sa.Integer(), server_default='0'),
        sa.Column('last_activity_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'topic_id', name='uq_topic_progress_user_id'),
    )

    op.create_table(
        'badges',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('icon', sa.String(50)),
        sa.Column('color', sa.String(30)),
        sa.Column('requirement', sa.JSON()),
        sa.Column('points', sa.Integer(), server_default='0'),
    )

    op.create_table(
        'user_badges',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_user_badges_user_id_users'), nullable=False),
        sa.Column('badge_id', sa.Integer(), sa.ForeignKey('badges.id', name='fk_user_badges_badge_id_badges'), nullable=False),
        sa.Column('earned_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'badge_id', name='uq_user_badges_user_id'),
    )

    op.create_table(
        'leaderboard',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_leaderboard_user_id_users'), nullable=False),
        sa.Column('topic_id', sa.Integer(), sa.ForeignKey('topics.id', name='fk_leaderboard_topic_id_topics')),
        sa.Column('total_points', sa.Integer(), server_default='0'),
        sa.Column('rank', sa.Integer()),
        sa.Column('last_updated', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'topic_id', name='uq_leaderboard_user_id'),
    )

    op.create_table(
        'user_stats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', name='fk_user_stats_user_id_users'), nullable=False),
        sa.Column('total_xp', sa.Integer(), server_default='0'),
        sa.Column('level', sa.Integer(), server_default='1'),
        sa.Column('streak', sa.Integer(), server_default='0'),
        sa.Column('last_active_date', sa.DateTime()),
        sa.Column('badges', sa.JSON()),
        sa.Column('achievements', sa.JSON()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', name='uq_user_stats_user_id'),
    )


def downgrade():
    op.drop_table('user_stats')
    op.drop_table('leaderboard')
    op.drop_table('user_badges')
    op.drop_table('badges')
    op.drop_table('topic_progress')
    op.drop_table('quiz_attempts')
    op.drop_table('user_progress')
    op.drop_table('lessons')
    op.drop_table('learning_modules')
    op.drop_table('answers')
    op.drop_table('test_attempts')
    op.drop_table('questions')
    op.drop_table('quiz_questions')
    op.drop_table('tests')
    op.drop_table('quizzes')
    op.drop_table('topics')
    op.drop_table('users')
