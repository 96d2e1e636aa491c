"""Baseline migration - tenants, memberships, locations and notifications

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table of the Company Hub schema, including the partial
unique indexes that back the single-active-membership and
single-primary-location rules.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _company_fk() -> sa.Column:
    return sa.Column(
        'company_id',
        sa.Uuid(),
        sa.ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False,
    )


def _user_fk() -> sa.Column:
    return sa.Column(
        'user_id',
        sa.Uuid(),
        sa.ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
    )


def upgrade() -> None:
    """Create tenant, location and notification tables."""

    # ==========================================================================
    # Companies & Users
    # ==========================================================================
    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # ==========================================================================
    # Memberships
    # ==========================================================================
    op.create_table(
        'memberships',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _user_fk(),
        _company_fk(),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_memberships_company_role', 'memberships', ['company_id', 'role'])
    op.create_index(
        'uq_memberships_active_user_company',
        'memberships',
        ['user_id', 'company_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active'),
    )

    # ==========================================================================
    # Locations
    # ==========================================================================
    op.create_table(
        'locations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _company_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('street_address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('latitude', sa.Numeric(10, 8), nullable=True),
        sa.Column('longitude', sa.Numeric(11, 8), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_locations_company_active', 'locations', ['company_id', 'is_active'])

    op.create_table(
        'location_assignments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column(
            'location_id',
            sa.Uuid(),
            sa.ForeignKey('locations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            'user_id', 'location_id', name='uq_location_assignments_user_location'
        ),
    )
    op.create_index(
        'uq_location_assignments_user_primary',
        'location_assignments',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('is_primary'),
        sqlite_where=sa.text('is_primary'),
    )
    op.create_index(
        'idx_location_assignments_location', 'location_assignments', ['location_id']
    )

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table(
        'notification_preferences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _user_fk(),
        _company_fk(),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('email_enabled', sa.Boolean(), nullable=False),
        sa.Column('in_app_enabled', sa.Boolean(), nullable=False),
        sa.Column('push_enabled', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            'user_id', 'company_id', 'notification_type',
            name='uq_notification_preferences_user_company_type',
        ),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _company_fk(),
        _user_fk(),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='unread'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dismissed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'idx_notif_user_status', 'notifications', ['user_id', 'status', 'created_at']
    )
    op.create_index(
        'idx_notif_company_user', 'notifications', ['company_id', 'user_id', 'created_at']
    )
    op.create_index('idx_notif_retention', 'notifications', ['status', 'created_at'])

    # ==========================================================================
    # Dispatch sources
    # ==========================================================================
    op.create_table(
        'surveys',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _company_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        'announcements',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _company_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        'goals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _company_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('goals')
    op.drop_table('announcements')
    op.drop_table('surveys')
    op.drop_index('idx_notif_retention', table_name='notifications')
    op.drop_index('idx_notif_company_user', table_name='notifications')
    op.drop_index('idx_notif_user_status', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('notification_preferences')
    op.drop_index('idx_location_assignments_location', table_name='location_assignments')
    op.drop_index('uq_location_assignments_user_primary', table_name='location_assignments')
    op.drop_table('location_assignments')
    op.drop_index('idx_locations_company_active', table_name='locations')
    op.drop_table('locations')
    op.drop_index('uq_memberships_active_user_company', table_name='memberships')
    op.drop_index('idx_memberships_company_role', table_name='memberships')
    op.drop_table('memberships')
    op.drop_table('users')
    op.drop_table('companies')
