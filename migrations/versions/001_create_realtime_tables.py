"""Create conversations, messages, receipts and notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('conversations',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('type', sa.String(length=10), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=True),
    sa.Column('private_key', sa.String(length=64), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id', name='pk_conversations'),
    sa.UniqueConstraint('private_key', name='uq_conversations_private_key')
    )
    op.create_index('idx_conversations_updated_at', 'conversations', ['updated_at'])

    op.create_table('conversation_members',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('conversation_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], name='fk_conversation_members_conversation_id_conversations', ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name='pk_conversation_members'),
    sa.UniqueConstraint('conversation_id', 'user_id', name='uq_conversation_members_pair')
    )
    op.create_index('ix_conversation_members_user_id', 'conversation_members', ['user_id'])

    op.create_table('messages',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('conversation_id', sa.Integer(), nullable=False),
    sa.Column('sender_id', sa.Integer(), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('type', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], name='fk_messages_conversation_id_conversations', ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name='pk_messages')
    )
    op.create_index('idx_messages_conversation_created', 'messages', ['conversation_id', 'created_at'])

    op.create_table('message_receipts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('message_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=10), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['message_id'], ['messages.id'], name='fk_message_receipts_message_id_messages', ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name='pk_message_receipts'),
    sa.UniqueConstraint('message_id', 'user_id', name='uq_message_receipts_pair')
    )
    op.create_index('idx_message_receipts_user_status', 'message_receipts', ['user_id', 'status'])

    op.create_table('notifications',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('receiver_id', sa.Integer(), nullable=False),
    sa.Column('sender_id', sa.Integer(), nullable=True),
    sa.Column('type', sa.String(length=50), nullable=False),
    sa.Column('content', sa.Text(), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=True),
    sa.Column('is_read', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id', name='pk_notifications')
    )
    op.create_index('idx_notifications_receiver_created', 'notifications', ['receiver_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_notifications_receiver_created', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_message_receipts_user_status', table_name='message_receipts')
    op.drop_table('message_receipts')
    op.drop_index('idx_messages_conversation_created', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_conversation_members_user_id', table_name='conversation_members')
    op.drop_table('conversation_members')
    op.drop_index('idx_conversations_updated_at', table_name='conversations')
    op.drop_table('conversations')
