"""create textback schema

Revision ID: 3f9c1a2b7d10
Revises:
Create Date: 2026-10-18 10:00:00.000000

Creates businesses plus the analytics tables (call_events, sms_events,
owner_alerts, api_usage) and the rate_limits table used for the per-number
SMS cooldown.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c1a2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create businesses, event tables and rate_limits."""
    op.create_table(
        'businesses',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('business_type', sa.String(100), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('public_phone', sa.String(50), nullable=True),
        sa.Column('twilio_phone', sa.String(50), nullable=True),
        sa.Column('forwarding_number', sa.String(50), nullable=True),
        sa.Column('owner_phone', sa.String(50), nullable=True),
        sa.Column('owner_email', sa.String(255), nullable=True),
        sa.Column('auth0_user_id', sa.String(255), nullable=True),
        sa.Column('subscription_tier', sa.String(20), nullable=False, server_default='basic'),
        sa.Column('subscription_status', sa.String(20), nullable=False, server_default='trialing'),
        sa.Column('stripe_customer_id', sa.String(100), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(100), nullable=True),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auto_reply_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('auto_reply_message', sa.Text(), nullable=True),
        sa.Column('custom_fallback_message', sa.Text(), nullable=True),
        sa.Column('online_ordering_url', sa.String(500), nullable=True),
        sa.Column('custom_alert_keywords', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('faqs', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('hours', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('custom_settings', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth0_user_id', name='uq_businesses_auth0_user_id'),
    )
    op.create_index('ix_businesses_public_phone', 'businesses', ['public_phone'])
    op.create_index('ix_businesses_twilio_phone', 'businesses', ['twilio_phone'])
    op.create_index('ix_businesses_auth0_user_id', 'businesses', ['auth0_user_id'])
    op.create_index('ix_businesses_stripe_customer_id', 'businesses', ['stripe_customer_id'])

    op.create_table(
        'call_events',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('call_sid', sa.String(64), nullable=False),
        sa.Column('business_id', sa.UUID(), nullable=True),
        sa.Column('from_number', sa.String(50), nullable=True),
        sa.Column('to_number', sa.String(50), nullable=True),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('call_status', sa.String(30), nullable=True),
        sa.Column('owner_notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_call_events_call_sid_event_type', 'call_events', ['call_sid', 'event_type'])
    op.create_index('ix_call_events_business_created', 'call_events', ['business_id', 'created_at'])

    op.create_table(
        'sms_events',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('message_sid', sa.String(64), nullable=True),
        sa.Column('business_id', sa.UUID(), nullable=True),
        sa.Column('from_number', sa.String(50), nullable=True),
        sa.Column('to_number', sa.String(50), nullable=True),
        sa.Column('direction', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('error_code', sa.String(20), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('request_id', sa.String(64), nullable=True),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_sms_events_message_sid', 'sms_events', ['message_sid'])
    op.create_index('ix_sms_events_business_created', 'sms_events', ['business_id', 'created_at'])

    op.create_table(
        'owner_alerts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('business_id', sa.UUID(), nullable=False),
        sa.Column('owner_phone', sa.String(50), nullable=False),
        sa.Column('alert_type', sa.String(30), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('message_sid', sa.String(64), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_owner_alerts_business_id', 'owner_alerts', ['business_id'])

    op.create_table(
        'api_usage',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('business_id', sa.UUID(), nullable=True),
        sa.Column('service', sa.String(30), nullable=False, server_default='openai'),
        sa.Column('model', sa.String(50), nullable=False),
        sa.Column('request_type', sa.String(50), nullable=False),
        sa.Column('prompt_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completion_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('estimated_cost', sa.Numeric(10, 6), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_api_usage_business_created', 'api_usage', ['business_id', 'created_at'])

    op.create_table(
        'rate_limits',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone', 'key', name='uq_rate_limits_phone_key'),
    )
    op.create_index('ix_rate_limits_expires_at', 'rate_limits', ['expires_at'])


def downgrade() -> None:
    """Drop all textback tables."""
    op.drop_index('ix_rate_limits_expires_at', table_name='rate_limits')
    op.drop_table('rate_limits')
    op.drop_index('ix_api_usage_business_created', table_name='api_usage')
    op.drop_table('api_usage')
    op.drop_index('ix_owner_alerts_business_id', table_name='owner_alerts')
    op.drop_table('owner_alerts')
    op.drop_index('ix_sms_events_business_created', table_name='sms_events')
    op.drop_index('ix_sms_events_message_sid', table_name='sms_events')
    op.drop_table('sms_events')
    op.drop_index('ix_call_events_business_created', table_name='call_events')
    op.drop_index('ix_call_events_call_sid_event_type', table_name='call_events')
    op.drop_table('call_events')
    op.drop_index('ix_businesses_stripe_customer_id', table_name='businesses')
    op.drop_index('ix_businesses_auth0_user_id', table_name='businesses')
    op.drop_index('ix_businesses_twilio_phone', table_name='businesses')
    op.drop_index('ix_businesses_public_phone', table_name='businesses')
    op.drop_table('businesses')
