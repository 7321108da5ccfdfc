"""initial scheduling schema

Revision ID: a1f0c3d2e4b5
Revises:
Create Date: 2025-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c3d2e4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'app_configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(64), nullable=False),
        sa.Column('value', sa.String(255), nullable=False, server_default=''),
        sa.UniqueConstraint('company_id', 'key', name='uq_app_config_company_key'),
    )
    op.create_index('ix_app_configs_company_id', 'app_configs', ['company_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False, server_default=''),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_company_id', 'users', ['company_id'])

    op.create_table(
        'director_companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('granted_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('granted_at', sa.DateTime(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_director_companies_user_id', 'director_companies', ['user_id'])
    op.create_index('ix_director_companies_company_id', 'director_companies', ['company_id'])
    op.create_index('ix_director_company_active', 'director_companies', ['user_id', 'company_id', 'is_deleted'])

    op.create_table(
        'shift_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(20), nullable=False),
        sa.Column('name', sa.String(60), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'key', name='uq_shift_type_company_key'),
    )
    op.create_index('ix_shift_types_company_id', 'shift_types', ['company_id'])

    op.create_table(
        'shift_instances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shift_type_id', sa.Integer(), sa.ForeignKey('shift_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(120), nullable=False, server_default=''),
        sa.Column('staffing_required', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('concurrency', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'shift_type_id', 'work_date', name='uq_shift_instance_company_type_date'),
        sa.CheckConstraint('staffing_required >= 0', name='ck_shift_instance_required_nonneg'),
    )
    op.create_index('ix_shift_instances_company_id', 'shift_instances', ['company_id'])
    op.create_index('ix_shift_instances_shift_type_id', 'shift_instances', ['shift_type_id'])
    op.create_index('ix_shift_instances_work_date', 'shift_instances', ['work_date'])

    op.create_table(
        'shift_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shift_instance_id', sa.Integer(), sa.ForeignKey('shift_instances.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('trainee_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'shift_instance_id', 'user_id', name='uq_shift_assignment_company_instance_user'),
    )
    op.create_index('ix_shift_assignments_company_id', 'shift_assignments', ['company_id'])
    op.create_index('ix_shift_assignments_shift_instance_id', 'shift_assignments', ['shift_instance_id'])
    op.create_index('ix_shift_assignments_user_id', 'shift_assignments', ['user_id'])
    op.create_index('ix_shift_assignment_user_instance', 'shift_assignments', ['user_id', 'shift_instance_id'])

    op.create_table(
        'time_off_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_time_off_requests_company_id', 'time_off_requests', ['company_id'])
    op.create_index('ix_time_off_requests_user_id', 'time_off_requests', ['user_id'])
    op.create_index('ix_time_off_user_range', 'time_off_requests', ['user_id', 'start_date', 'end_date'])

    op.create_table(
        'swap_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_assignment_id', sa.Integer(), sa.ForeignKey('shift_assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('to_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_swap_requests_company_id', 'swap_requests', ['company_id'])
    op.create_index('ix_swap_requests_from_assignment_id', 'swap_requests', ['from_assignment_id'])

    op.create_table(
        'user_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(40), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('message', sa.String(1000), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('related_entity_id', sa.Integer(), nullable=True),
        sa.Column('related_entity_type', sa.String(50), nullable=True),
    )
    op.create_index('ix_user_notifications_company_id', 'user_notifications', ['company_id'])
    op.create_index('ix_user_notifications_user_id', 'user_notifications', ['user_id'])


def downgrade() -> None:
    for table in (
        'user_notifications',
        'swap_requests',
        'time_off_requests',
        'shift_assignments',
        'shift_instances',
        'shift_types',
        'director_companies',
        'users',
        'app_configs',
        'companies',
    ):
        op.drop_table(table)
