"""Initial schema: profiles, providers, categories, requests, history, notifications.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-14
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

REQUEST_STATUS_VALUES = ('pending', 'assigned', 'in_progress', 'completed', 'cancelled')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables."""
    request_status = sa.Enum(*REQUEST_STATUS_VALUES, name='request_status')

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(320), nullable=True, unique=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('location_lat', sa.Numeric(10, 8), nullable=True),
        sa.Column('location_lng', sa.Numeric(11, 8), nullable=True),
        sa.Column('role_resident', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('role_provider', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('role_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'service_categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'provider_profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('service_radius_km', sa.Numeric(10, 2), nullable=False,
                  server_default='10.00'),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'provider_categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('provider_profile_id', sa.Uuid(),
                  sa.ForeignKey('provider_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Uuid(),
                  sa.ForeignKey('service_categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.UniqueConstraint('provider_profile_id', 'category_id',
                            name='uq_provider_categories_pair'),
    )
    op.create_index('ix_provider_categories_category', 'provider_categories', ['category_id'])

    op.create_table(
        'service_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('resident_id', sa.Uuid(),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider_id', sa.Uuid(),
                  sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('category_id', sa.Uuid(),
                  sa.ForeignKey('service_categories.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', request_status, nullable=False, server_default='pending'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('photos', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('location_lat', sa.Numeric(10, 8), nullable=False),
        sa.Column('location_lng', sa.Numeric(11, 8), nullable=False),
        sa.Column('location_address', sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_service_requests_status_category', 'service_requests',
                    ['status', 'category_id'])
    op.create_index('ix_service_requests_resident', 'service_requests', ['resident_id'])
    op.create_index('ix_service_requests_provider', 'service_requests', ['provider_id'])

    op.create_table(
        'request_status_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('request_id', sa.Uuid(),
                  sa.ForeignKey('service_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', request_status, nullable=False),
        sa.Column('changed_by', sa.Uuid(),
                  sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('ix_request_status_history_request', 'request_status_history',
                    ['request_id', 'created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_request_id', sa.Uuid(),
                  sa.ForeignKey('service_requests.id', ondelete='CASCADE'), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_user_created', 'notifications',
                    ['user_id', 'created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_notifications_user_created', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_request_status_history_request', table_name='request_status_history')
    op.drop_table('request_status_history')
    op.drop_index('ix_service_requests_provider', table_name='service_requests')
    op.drop_index('ix_service_requests_resident', table_name='service_requests')
    op.drop_index('ix_service_requests_status_category', table_name='service_requests')
    op.drop_table('service_requests')
    op.drop_index('ix_provider_categories_category', table_name='provider_categories')
    op.drop_table('provider_categories')
    op.drop_table('provider_profiles')
    op.drop_table('service_categories')
    op.drop_table('profiles')
    sa.Enum(name='request_status').drop(op.get_bind(), checkfirst=True)
