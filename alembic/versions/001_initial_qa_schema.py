"""Initial migration - creates the session Q&A tables

Revision ID: 001_initial_qa_schema
Revises:
Create Date: 2026-01-29
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_qa_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create enums
    role = postgresql.ENUM('STUDENT', 'TA', 'PROFESSOR', name='role', create_type=False)
    role.create(op.get_bind(), checkfirst=True)
    session_status = postgresql.ENUM('SCHEDULED', 'ACTIVE', 'ENDED', name='session_status', create_type=False)
    session_status.create(op.get_bind(), checkfirst=True)
    visibility = postgresql.ENUM('PUBLIC', 'INSTRUCTOR_ONLY', name='visibility', create_type=False)
    visibility.create(op.get_bind(), checkfirst=True)
    question_status = postgresql.ENUM('OPEN', 'ANSWERED', 'RESOLVED', name='question_status', create_type=False)
    question_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('utorid', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', role, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('utorid'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'courses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('semester', sa.String(length=64), nullable=False),
        sa.Column('created_by_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_courses_semester', 'courses', ['semester'])
    op.create_index('ix_courses_created_by_id', 'courses', ['created_by_id'])

    op.create_table(
        'course_enrollments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('course_id', sa.String(length=36), nullable=False),
        sa.Column('role', role, nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_course_enrollment_user_course'),
    )
    op.create_index('ix_course_enrollments_user_id', 'course_enrollments', ['user_id'])
    op.create_index('ix_course_enrollments_course_id', 'course_enrollments', ['course_id'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('course_id', sa.String(length=36), nullable=False),
        sa.Column('created_by_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('join_code', sa.String(length=20), nullable=False),
        sa.Column('status', session_status, nullable=False),
        sa.Column('is_submissions_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('join_code'),
    )
    op.create_index('ix_sessions_course_id', 'sessions', ['course_id'])
    op.create_index('ix_sessions_created_by_id', 'sessions', ['created_by_id'])
    op.create_index('ix_sessions_status', 'sessions', ['status'])

    op.create_table(
        'slides',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('slide_number', sa.Integer(), nullable=False),
        sa.Column('content_url', sa.String(length=500), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_slides_session_id', 'slides', ['session_id'])

    op.create_table(
        'questions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('slide_id', sa.String(length=36), nullable=True),
        sa.Column('author_id', sa.String(length=36), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('visibility', visibility, nullable=False),
        sa.Column('status', question_status, nullable=False),
        sa.Column('upvote_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.ForeignKeyConstraint(['slide_id'], ['slides.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_questions_session_id', 'questions', ['session_id'])
    op.create_index('ix_questions_slide_id', 'questions', ['slide_id'])
    op.create_index('ix_questions_author_id', 'questions', ['author_id'])
    op.create_index('ix_questions_status', 'questions', ['status'])
    op.create_index('ix_questions_visibility', 'questions', ['visibility'])
    op.create_index('ix_questions_created_at', 'questions', ['created_at'])

    op.create_table(
        'answers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('author_id', sa.String(length=36), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id']),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_answers_question_id', 'answers', ['question_id'])
    op.create_index('ix_answers_author_id', 'answers', ['author_id'])
    op.create_index(
        'uq_answers_accepted_per_question',
        'answers',
        ['question_id'],
        unique=True,
        postgresql_where=sa.text('is_accepted'),
    )

    op.create_table(
        'question_upvotes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('question_id', 'user_id', name='uq_question_upvote_question_user'),
    )
    op.create_index('ix_question_upvotes_question_id', 'question_upvotes', ['question_id'])
    op.create_index('ix_question_upvotes_user_id', 'question_upvotes', ['user_id'])


def downgrade() -> None:
    op.drop_table('question_upvotes')
    op.drop_index('uq_answers_accepted_per_question', table_name='answers')
    op.drop_table('answers')
    op.drop_table('questions')
    op.drop_table('slides')
    op.drop_table('sessions')
    op.drop_table('course_enrollments')
    op.drop_table('courses')
    op.drop_table('users')

    op.execute('DROP TYPE IF EXISTS question_status')
    op.execute('DROP TYPE IF EXISTS visibility')
    op.execute('DROP TYPE IF EXISTS session_status')
    op.execute('DROP TYPE IF EXISTS role')
