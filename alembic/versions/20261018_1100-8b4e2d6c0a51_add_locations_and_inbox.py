"""add locations and conversation inbox

Revision ID: 8b4e2d6c0a51
Revises: 3f9c1a2b7d10
Create Date: 2026-10-18 11:00:00.000000

Adds locations (per-branch numbers, hours and manager alerts) and the
inbox tables: one conversation per business/customer number plus its
messages with read state.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8b4e2d6c0a51'
down_revision: Union[str, None] = '3f9c1a2b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create locations, conversations and conversation_messages."""
    op.create_table(
        'locations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('business_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('hours', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('manager_name', sa.String(255), nullable=True),
        sa.Column('manager_phone', sa.String(50), nullable=True),
        sa.Column('forwarding_number', sa.String(50), nullable=True),
        sa.Column('online_ordering_url', sa.String(500), nullable=True),
        sa.Column('auto_reply_message', sa.Text(), nullable=True),
        sa.Column('custom_settings', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_locations_business_id', 'locations', ['business_id'])
    op.create_index('ix_locations_phone_number', 'locations', ['phone_number'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('business_id', sa.UUID(), nullable=False),
        sa.Column('location_id', sa.UUID(), nullable=True),
        sa.Column('customer_phone', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('source', sa.String(20), nullable=False),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_message_preview', sa.String(160), nullable=True),
        sa.Column('unread_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'customer_phone', name='uq_conversations_business_customer'),
    )
    op.create_index('ix_conversations_business_id', 'conversations', ['business_id'])

    op.create_table(
        'conversation_messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=False),
        sa.Column('sender_type', sa.String(20), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('message_sid', sa.String(64), nullable=True),
        sa.Column('reply_source', sa.String(30), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_conversation_messages_conversation_created',
        'conversation_messages',
        ['conversation_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop the inbox and locations tables."""
    op.drop_index('ix_conversation_messages_conversation_created', table_name='conversation_messages')
    op.drop_table('conversation_messages')
    op.drop_index('ix_conversations_business_id', table_name='conversations')
    op.drop_table('conversations')
    op.drop_index('ix_locations_phone_number', table_name='locations')
    op.drop_index('ix_locations_business_id', table_name='locations')
    op.drop_table('locations')
