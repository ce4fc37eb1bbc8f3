"""Initial tables: profiles, workspaces, settings, members, orphaned billing.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # Profiles
    # ==========================================================================

    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('whatsapp', sa.String(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('trial_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_stripe_customer_id', 'profiles', ['stripe_customer_id'])

    # ==========================================================================
    # Workspaces
    # ==========================================================================

    op.create_table(
        'workspaces',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('cpf_cnpj', sa.String(), nullable=True),
        # Address
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('number', sa.String(), nullable=True),
        sa.Column('complement', sa.String(), nullable=True),
        sa.Column('neighborhood', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('zip_code', sa.String(), nullable=True),
        # Billing state
        sa.Column('status', sa.String(), nullable=False, server_default='payment_pending'),
        sa.Column('plan_type', sa.String(), nullable=False),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(), nullable=True),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('subscription_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_event_at', sa.DateTime(timezone=True), nullable=True),
        # Plan limits, -1 = unlimited
        sa.Column('max_patients', sa.Integer(), nullable=False),
        sa.Column('max_members', sa.Integer(), nullable=False),
        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workspaces_id', 'workspaces', ['id'])
    op.create_index('ix_workspaces_name', 'workspaces', ['name'])
    op.create_index('ix_workspaces_status', 'workspaces', ['status'])
    op.create_index('ix_workspaces_stripe_customer_id', 'workspaces', ['stripe_customer_id'])
    op.create_index(
        'ix_workspaces_stripe_subscription_id', 'workspaces', ['stripe_subscription_id']
    )

    # ==========================================================================
    # Workspace Settings
    # ==========================================================================

    op.create_table(
        'workspace_settings',
        sa.Column('workspace_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_duration', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('reminder_hours_before', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('allow_online_booking', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('workspace_id'),
    )

    # ==========================================================================
    # Workspace Members
    # ==========================================================================

    op.create_table(
        'workspace_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('workspace_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workspace_members_id', 'workspace_members', ['id'])
    op.create_index('ix_workspace_members_workspace_id', 'workspace_members', ['workspace_id'])
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])

    # ==========================================================================
    # Orphaned Billing Resources
    # ==========================================================================

    op.create_table(
        'orphaned_billing_resources',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(), nullable=True),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orphaned_billing_resources_id', 'orphaned_billing_resources', ['id'])
    op.create_index(
        'ix_orphaned_billing_resources_user_id', 'orphaned_billing_resources', ['user_id']
    )
    op.create_index(
        'ix_orphaned_billing_resources_stripe_customer_id',
        'orphaned_billing_resources',
        ['stripe_customer_id'],
    )
    op.create_index(
        'ix_orphaned_billing_resources_stripe_subscription_id',
        'orphaned_billing_resources',
        ['stripe_subscription_id'],
    )
    op.create_index(
        'ix_orphaned_billing_resources_resolved', 'orphaned_billing_resources', ['resolved']
    )


def downgrade() -> None:
    op.drop_table('orphaned_billing_resources')
    op.drop_table('workspace_members')
    op.drop_table('workspace_settings')
    op.drop_table('workspaces')
    op.drop_table('profiles')
