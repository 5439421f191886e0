"""initial schema: users, profiles, tutoring requests, applications, connections

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = postgresql.ENUM('STUDENT', 'TUTOR', 'ADMIN', name='user_role_enum', create_type=False)
verification_status_enum = postgresql.ENUM(
    'PENDING', 'APPROVED', 'REJECTED', name='verification_status_enum', create_type=False
)
request_status_enum = postgresql.ENUM('OPEN', 'MATCHED', 'CLOSED', name='request_status_enum', create_type=False)
application_status_enum = postgresql.ENUM(
    'PENDING', 'ACCEPTED', 'REJECTED', name='application_status_enum', create_type=False
)
connection_status_enum = postgresql.ENUM(
    'PENDING', 'ACCEPTED', 'DECLINED', name='connection_status_enum', create_type=False
)

ENUMS = (
    user_role_enum,
    verification_status_enum,
    request_status_enum,
    application_status_enum,
    connection_status_enum,
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', user_role_enum, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'student_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('grade_level', sa.String(50), nullable=False),
        sa.Column('subjects_needed', postgresql.ARRAY(sa.String), nullable=False, server_default='{}'),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('special_needs_description', sa.Text, nullable=True),
        sa.Column('verification_documents', postgresql.ARRAY(sa.String), nullable=False, server_default='{}'),
        sa.Column('verification_status', verification_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('verification_notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_student_profiles_user_id', 'student_profiles', ['user_id'], unique=True)
    op.create_index('ix_student_profiles_verification_status', 'student_profiles', ['verification_status'])

    op.create_table(
        'tutor_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('education_level', sa.String(100), nullable=False),
        sa.Column('subjects_taught', postgresql.ARRAY(sa.String), nullable=False, server_default='{}'),
        sa.Column('bio', sa.Text, nullable=True),
        sa.Column('availability', postgresql.JSONB, nullable=True),
        sa.Column('exam_results', postgresql.JSONB, nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('verification_documents', postgresql.ARRAY(sa.String), nullable=False, server_default='{}'),
        sa.Column('verification_status', verification_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('verification_notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tutor_profiles_user_id', 'tutor_profiles', ['user_id'], unique=True)
    op.create_index('ix_tutor_profiles_verification_status', 'tutor_profiles', ['verification_status'])

    op.create_table(
        'tutoring_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('subjects', postgresql.ARRAY(sa.String), nullable=False),
        sa.Column('grade_level', sa.String(50), nullable=False),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('preferred_schedule', postgresql.JSONB, nullable=True),
        sa.Column('status', request_status_enum, nullable=False, server_default='OPEN'),
        sa.Column('selected_tutor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tutor_profiles.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tutoring_requests_student_id', 'tutoring_requests', ['student_id'])
    op.create_index('ix_tutoring_requests_grade_level', 'tutoring_requests', ['grade_level'])
    op.create_index('ix_tutoring_requests_status', 'tutoring_requests', ['status'])
    op.create_index('ix_tutoring_requests_created_at', 'tutoring_requests', ['created_at'])
    op.create_index(
        'ix_tutoring_requests_subjects', 'tutoring_requests', ['subjects'], postgresql_using='gin'
    )

    op.create_table(
        'tutor_applications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('request_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tutoring_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tutor_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('proposed_schedule', postgresql.JSONB, nullable=True),
        sa.Column('status', application_status_enum, nullable=False, server_default='PENDING'),
        *_timestamps(),
        sa.UniqueConstraint('request_id', 'tutor_id', name='uq_tutor_applications_request_tutor'),
    )
    op.create_index('ix_tutor_applications_request_id', 'tutor_applications', ['request_id'])
    op.create_index('ix_tutor_applications_tutor_id', 'tutor_applications', ['tutor_id'])
    op.create_index('ix_tutor_applications_status', 'tutor_applications', ['status'])
    op.create_index('ix_tutor_applications_created_at', 'tutor_applications', ['created_at'])

    op.create_table(
        'connection_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tutor_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutoring_request_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tutoring_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', connection_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_connection_requests_student_id', 'connection_requests', ['student_id'])
    op.create_index('ix_connection_requests_tutor_id', 'connection_requests', ['tutor_id'])
    op.create_index('ix_connection_requests_tutoring_request_id', 'connection_requests', ['tutoring_request_id'])
    op.create_index('ix_connection_requests_status', 'connection_requests', ['status'])
    op.create_index('ix_connection_requests_created_at', 'connection_requests', ['created_at'])


def downgrade() -> None:
    op.drop_table('connection_requests')
    op.drop_table('tutor_applications')
    op.drop_table('tutoring_requests')
    op.drop_table('tutor_profiles')
    op.drop_table('student_profiles')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
