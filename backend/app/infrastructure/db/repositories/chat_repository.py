"""
Chat Repository for the AI Chat backend

Repository for chat and message persistence.
Every chat query is scoped by the owning user's uid.
"""

from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update

from app.domain.chat import Chat, Message, MessageRole
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.chat import ChatModel
from app.infrastructure.db.models.message import MessageModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


class ChatRepository(BaseRepository[ChatModel, Chat]):
    """
    Repository for chat-related database operations.

    Manages both Chat and Message entities.
    """

    def __init__(self, db: DatabaseManager):
        super().__init__(db, ChatModel, Chat)

    # =========================================================================
    # Chat Operations
    # =========================================================================

    async def create_chat(self, user_id: str, title: str) -> Chat:
        """
        Create a new chat.

        Args:
            user_id: Owning user's uid
            title: Initial title

        Returns:
            Created Chat snapshot
        """
        now = utcnow()
        row = ChatModel(user_id=user_id, title=title, created_at=now, updated_at=now)
        async with self._db.session() as session:
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return self._to_domain(row)

    async def get_user_chats(self, user_id: str, limit: int = 50) -> List[Chat]:
        """
        Get a user's chats, most recently updated first.

        Args:
            user_id: Owning user's uid
            limit: Maximum chats to return

        Returns:
            List of Chat snapshots
        """
        stmt = (
            select(ChatModel)
            .where(ChatModel.user_id == user_id)
            .order_by(ChatModel.updated_at.desc())
            .limit(limit)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [self._to_domain(row) for row in result.scalars().all()]

    async def get_owned_chat(self, chat_id: UUID, user_id: str) -> Optional[Chat]:
        """Get a chat only if it belongs to user_id."""
        stmt = select(ChatModel).where(
            ChatModel.id == chat_id,
            ChatModel.user_id == user_id,
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return self._to_domain(result.scalar_one_or_none())

    async def update_chat(
        self,
        chat_id: UUID,
        user_id: str,
        title: Optional[str] = None,
    ) -> Optional[Chat]:
        """
        Set a new title (if given) and touch updated_at in one statement.

        Returns:
            Updated Chat, or None if the chat is absent or not owned
        """
        values = {"updated_at": utcnow()}
        if title is not None:
            values["title"] = title

        async with self._db.session() as session:
            result = await session.execute(
                update(ChatModel)
                .where(ChatModel.id == chat_id, ChatModel.user_id == user_id)
                .values(**values)
            )
            if result.rowcount == 0:
                return None
            row = await session.get(ChatModel, chat_id, populate_existing=True)
            return self._to_domain(row)

    async def delete_chat(self, chat_id: UUID, user_id: str) -> bool:
        """
        Delete an owned chat and all its messages in one transaction.

        Returns:
            True if a chat was deleted, False if absent or not owned
        """
        async with self._db.session() as session:
            result = await session.execute(
                delete(ChatModel).where(
                    ChatModel.id == chat_id,
                    ChatModel.user_id == user_id,
                )
            )
            if result.rowcount == 0:
                return False
            await session.execute(
                delete(MessageModel).where(MessageModel.chat_id == chat_id)
            )
            return True

    # =========================================================================
    # Message Operations
    # =========================================================================

    async def get_chat_messages(self, chat_id: UUID) -> List[Message]:
        """
        Get all messages in a chat, ordered by creation time.

        Args:
            chat_id: The chat's UUID

        Returns:
            List of Message snapshots, oldest first
        """
        stmt = (
            select(MessageModel)
            .where(MessageModel.chat_id == chat_id)
            .order_by(MessageModel.created_at.asc())
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [
                Message.model_validate(row, from_attributes=True)
                for row in result.scalars().all()
            ]

    async def add_message(
        self,
        chat_id: UUID,
        role: MessageRole,
        content: str,
    ) -> Message:
        """
        Append a message to a chat.

        The timestamp is kept strictly after the chat's latest message so
        creation order and read order agree even on a coarse clock.

        Args:
            chat_id: The chat's UUID
            role: Message role
            content: Message content

        Returns:
            Created Message snapshot
        """
        async with self._db.session() as session:
            latest = (
                await session.execute(
                    select(func.max(MessageModel.created_at)).where(
                        MessageModel.chat_id == chat_id
                    )
                )
            ).scalar_one_or_none()
            created_at = utcnow()
            if latest is not None and created_at <= latest:
                created_at = latest + timedelta(microseconds=1)

            row = MessageModel(
                chat_id=chat_id,
                role=role.value,
                content=content,
                created_at=created_at,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return Message.model_validate(row, from_attributes=True)
