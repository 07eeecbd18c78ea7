"""
Message SQLModel

Database model for chat messages. Rows are append-only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlmodel import Field

from app.infrastructure.db.models.base import UUIDMixin, utcnow


class MessageModel(UUIDMixin, table=True):
    """
    Message database table model.

    Ordered within a chat by ``created_at`` ascending.
    """

    __tablename__ = "messages"

    chat_id: UUID = Field(
        sa_column=Column(
            "chat_id",
            Uuid,
            ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        ),
        description="Reference to parent chat"
    )

    role: str = Field(
        sa_column=Column(String(20), nullable=False),
        description="Message role: 'user', 'assistant' or 'system'"
    )

    content: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Message content"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(),
        nullable=False,
        index=True,
        description="Message timestamp"
    )
