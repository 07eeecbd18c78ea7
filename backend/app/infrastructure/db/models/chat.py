"""
Chat SQLModel

Database model for chat conversations.
"""

from sqlalchemy import Column, Index, String
from sqlmodel import Field

from app.domain.chat import DEFAULT_CHAT_TITLE
from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class ChatModel(UUIDMixin, TimestampMixin, table=True):
    """
    Chat database table model.

    Every read and write filters on ``user_id``.
    """

    __tablename__ = "chats"
    __table_args__ = (
        Index("ix_chats_user_id_updated_at", "user_id", "updated_at"),
    )

    user_id: str = Field(
        sa_column=Column(String(128), index=True, nullable=False),
        description="Owning user's uid"
    )
    title: str = Field(
        default=DEFAULT_CHAT_TITLE,
        sa_column=Column(String(255), nullable=False),
        description="Overwritten by a generated title after the first exchange"
    )
