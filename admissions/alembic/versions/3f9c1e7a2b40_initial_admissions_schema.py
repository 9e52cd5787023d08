"""initial admissions schema

Revision ID: 3f9c1e7a2b40
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c1e7a2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


application_status = postgresql.ENUM('Pending', 'Accepted', 'Rejected', name='applicationstatus', create_type=False)
application_source = postgresql.ENUM('manual', 'online_application', name='applicationsource', create_type=False)
email_type = postgresql.ENUM('application_confirmation', 'admission_letter', name='email_type', create_type=False)
email_status = postgresql.ENUM('sent', 'failed', name='email_status', create_type=False)


def upgrade() -> None:
    """Upgrade schema - applications, counters, courses, settings, email logs and admin users."""
    bind = op.get_bind()
    # applicationstatus is shared by two tables, so enum types are created once up front
    for enum_type in (application_status, application_source, email_type, email_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('fee_balance', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('fee_per_year', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_courses_name', 'courses', ['name'], unique=True)

    op.create_table(
        'admin_settings',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_admin_settings_key', 'admin_settings', ['key'], unique=True)

    op.create_table(
        'admission_counters',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('prefix', sa.String(20), nullable=False),
        sa.Column('year', sa.String(2), nullable=False),
        sa.Column('current_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('prefix', 'year', name='uq_admission_counter_prefix_year'),
    )

    op.create_table(
        'applications',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('admission_number', sa.String(50), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('course', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('prior_academic_grade', sa.String(20), nullable=True),
        sa.Column('status', application_status, nullable=False, server_default='Pending'),
        sa.Column('source', application_source, nullable=False, server_default='manual'),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_applications_admission_number', 'applications', ['admission_number'], unique=True)
    op.create_index('ix_applications_full_name', 'applications', ['full_name'])
    op.create_index('ix_applications_email', 'applications', ['email'])
    op.create_index('ix_applications_course', 'applications', ['course'])
    op.create_index('ix_applications_status', 'applications', ['status'])
    op.create_index('ix_application_status_applied', 'applications', ['status', 'applied_at'])

    op.create_table(
        'application_status_history',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('application_id', sa.Uuid(), sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_status', application_status, nullable=False),
        sa.Column('to_status', application_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_application_status_history_application_id', 'application_status_history', ['application_id'])

    op.create_table(
        'email_logs',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('type', email_type, nullable=False),
        sa.Column('to_email', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('student_name', sa.String(255), nullable=False),
        sa.Column('application_id', sa.Uuid(), sa.ForeignKey('applications.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', email_status, nullable=False),
        sa.Column('message_id', sa.String(255), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_email_logs_application_id', 'email_logs', ['application_id'])
    op.create_index('ix_email_logs_status', 'email_logs', ['status'])
    op.create_index('ix_email_logs_sent_at', 'email_logs', ['sent_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('email_logs')
    op.drop_table('application_status_history')
    op.drop_table('applications')
    op.drop_table('admission_counters')
    op.drop_table('admin_settings')
    op.drop_table('courses')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (email_status, email_type, application_source, application_status):
        enum_type.drop(bind, checkfirst=True)
