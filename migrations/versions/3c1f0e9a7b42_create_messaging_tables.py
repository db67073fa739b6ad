"""create conversation and message tables

Revision ID: 3c1f0e9a7b42
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f0e9a7b42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the conversation and message tables."""
    op.create_table(
        "conversation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lo_user_id", sa.String(length=64), nullable=False),
        sa.Column("hi_user_id", sa.String(length=64), nullable=False),
        sa.Column("last_message_preview", sa.Text(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unread_count_lo", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unread_count_hi", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lo_user_id", "hi_user_id", name="uq_conversation_pair"),
        sa.CheckConstraint("unread_count_lo >= 0", name="ck_conversation_unread_lo"),
        sa.CheckConstraint("unread_count_hi >= 0", name="ck_conversation_unread_hi"),
    )
    op.create_index("ix_conversation_lo_user_id", "conversation", ["lo_user_id"])
    op.create_index("ix_conversation_hi_user_id", "conversation", ["hi_user_id"])

    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("receiver_id", sa.String(length=64), nullable=False),
        sa.Column("ciphertext", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversation.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_message_conversation_created", "message", ["conversation_id", "created_at"]
    )
    op.create_index("ix_message_created_at", "message", ["created_at"])


def downgrade() -> None:
    """Drop the messaging tables."""
    op.drop_index("ix_message_created_at", table_name="message")
    op.drop_index("ix_message_conversation_created", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_conversation_hi_user_id", table_name="conversation")
    op.drop_index("ix_conversation_lo_user_id", table_name="conversation")
    op.drop_table("conversation")
