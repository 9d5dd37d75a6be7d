"""create drms schema

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c1e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('job_title', sa.String(length=200), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('managed_department', sa.String(length=120), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)
    op.create_index('ix_users_department', 'users', ['department'], unique=False)

    op.create_table(
        'document_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('target_type', sa.String(length=20), nullable=False),
        sa.Column('target_department', sa.String(length=120), nullable=True),
        sa.Column('accepted_formats', sa.String(length=255), nullable=True),
        sa.Column('max_file_size_mb', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assigned_to_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_document_requests_status', 'document_requests', ['status'], unique=False)
    op.create_index('ix_document_requests_created_by_id', 'document_requests', ['created_by_id'], unique=False)
    op.create_index('ix_document_requests_assigned_to_id', 'document_requests', ['assigned_to_id'], unique=False)

    op.create_table(
        'document_slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('document_requests.id'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
    )
    op.create_index('ix_document_slots_request_id', 'document_slots', ['request_id'], unique=False)

    op.create_table(
        'request_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('document_requests.id'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('reviewed_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('last_reminder_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('request_id', 'employee_id', name='uq_assignment_request_employee'),
    )
    op.create_index('ix_request_assignments_request_id', 'request_assignments', ['request_id'], unique=False)
    op.create_index('ix_request_assignments_employee_id', 'request_assignments', ['employee_id'], unique=False)
    op.create_index('ix_assignment_status_due', 'request_assignments', ['status', 'due_date'], unique=False)

    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('request_assignments.id'), nullable=False),
        sa.Column('uploaded_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.String(length=120), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('is_latest', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('assignment_id', 'version', name='uq_document_assignment_version'),
    )
    op.create_index('ix_document_assignment_latest', 'documents', ['assignment_id', 'is_latest'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('link', sa.String(length=255), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notification_user_read', 'notifications', ['user_id', 'is_read'], unique=False)
    op.create_index('ix_notification_created', 'notifications', ['created_at'], unique=False)

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_log_action', 'audit_log', ['action'], unique=False)
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'], unique=False)

    op.create_table(
        'system_setting',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(length=100), nullable=False, unique=True),
        sa.Column('value', sa.String(length=255), nullable=True),
    )


def downgrade():
    op.drop_table('system_setting')

    op.drop_index('ix_audit_log_created_at', table_name='audit_log')
    op.drop_index('ix_audit_log_action', table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index('ix_notification_created', table_name='notifications')
    op.drop_index('ix_notification_user_read', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_document_assignment_latest', table_name='documents')
    op.drop_table('documents')

    op.drop_index('ix_assignment_status_due', table_name='request_assignments')
    op.drop_index('ix_request_assignments_employee_id', table_name='request_assignments')
    op.drop_index('ix_request_assignments_request_id', table_name='request_assignments')
    op.drop_table('request_assignments')

    op.drop_index('ix_document_slots_request_id', table_name='document_slots')
    op.drop_table('document_slots')

    op.drop_index('ix_document_requests_assigned_to_id', table_name='document_requests')
    op.drop_index('ix_document_requests_created_by_id', table_name='document_requests')
    op.drop_index('ix_document_requests_status', table_name='document_requests')
    op.drop_table('document_requests')

    op.drop_index('ix_users_department', table_name='users')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
