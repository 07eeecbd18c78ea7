"""
Chat Service for the AI Chat backend

Orchestrates chat sessions: ownership-checked CRUD over chats and the
message exchange with the response generator.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional
from uuid import UUID

from app.domain.chat import (
    DEFAULT_CHAT_TITLE,
    Chat,
    Message,
    MessageRole,
    SendMessageResult,
    build_context,
)
from app.domain.interfaces import ResponseGenerator
from app.infrastructure.db.repositories.chat_repository import ChatRepository
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)

EMPTY_RESPONSE_FALLBACK = "I apologize, but I could not generate a response."


class ChatService:
    """
    Chat orchestrator.

    Sends on the same chat are serialized by an in-process lock keyed by
    chat id; locks are dropped once no task holds or waits on them.
    """

    def __init__(
        self,
        chats: ChatRepository,
        generator: ResponseGenerator,
        list_limit: int = 50,
    ):
        self._chats = chats
        self._generator = generator
        self._list_limit = list_limit
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._lock_users: Dict[UUID, int] = {}

    @asynccontextmanager
    async def _chat_lock(self, chat_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._lock_users[chat_id] = self._lock_users.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[chat_id] -= 1
            if self._lock_users[chat_id] == 0:
                del self._lock_users[chat_id]
                del self._locks[chat_id]

    # =========================================================================
    # Chat Operations
    # =========================================================================

    async def create_chat(self, user_id: str, title: Optional[str] = None) -> Chat:
        """Create a chat with the given title, or the default one."""
        chat = await self._chats.create_chat(
            user_id=user_id,
            title=(title or "").strip() or DEFAULT_CHAT_TITLE,
        )
        logger.info(f"Created chat {chat.id} for user {user_id}")
        return chat

    async def get_user_chats(self, user_id: str) -> List[Chat]:
        """Most recently updated chats first, capped at the list limit."""
        return await self._chats.get_user_chats(user_id, limit=self._list_limit)

    async def get_chat(self, chat_id: UUID, user_id: str) -> Chat:
        """
        Get an owned chat.

        Raises:
            NotFoundError: chat absent or owned by someone else
        """
        chat = await self._chats.get_owned_chat(chat_id, user_id)
        if chat is None:
            raise NotFoundError("Chat not found", operation="select", table="chats")
        return chat

    async def get_chat_messages(self, chat_id: UUID, user_id: str) -> List[Message]:
        """Messages of an owned chat, oldest first."""
        await self.get_chat(chat_id, user_id)
        return await self._chats.get_chat_messages(chat_id)

    async def update_chat_title(self, chat_id: UUID, user_id: str, title: str) -> Chat:
        """
        Rename an owned chat.

        Raises:
            ValidationError: title empty after trimming
            NotFoundError: chat absent or not owned
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        chat = await self._chats.update_chat(chat_id, user_id, title=title)
        if chat is None:
            raise NotFoundError("Chat not found", operation="update", table="chats")
        return chat

    async def delete_chat(self, chat_id: UUID, user_id: str) -> None:
        """Delete an owned chat and its messages; unknown chats are ignored."""
        deleted = await self._chats.delete_chat(chat_id, user_id)
        if deleted:
            logger.info(f"Deleted chat {chat_id} for user {user_id}")
        else:
            logger.debug(f"Delete of chat {chat_id} by {user_id} matched nothing")

    # =========================================================================
    # Message Exchange
    # =========================================================================

    async def send_message(
        self,
        chat_id: UUID,
        user_id: str,
        content: str,
    ) -> SendMessageResult:
        """
        Send a user message and store the generated reply.

        The user message stays persisted if generation fails. The first
        exchange in a chat replaces its title with a generated one; later
        exchanges only touch the update time.

        Raises:
            ValidationError: content empty after trimming
            NotFoundError: chat absent or not owned
            AIServiceError: the response generator failed
        """
        if not content or not content.strip():
            raise ValidationError("Message content is required")

        async with self._chat_lock(chat_id):
            await self.get_chat(chat_id, user_id)

            user_message = await self._chats.add_message(chat_id, MessageRole.USER, content)

            history = await self._chats.get_chat_messages(chat_id)
            first_exchange = all(message.id == user_message.id for message in history)

            reply = await self._generator.complete(build_context(history, user_message))

            assistant_message = await self._chats.add_message(
                chat_id,
                MessageRole.ASSISTANT,
                reply or EMPTY_RESPONSE_FALLBACK,
            )

            if first_exchange:
                title = await self._generator.generate_chat_title(content)
                chat = await self._chats.update_chat(chat_id, user_id, title=title)
                logger.info(f"Titled chat {chat_id}: {title!r}")
            else:
                chat = await self._chats.update_chat(chat_id, user_id)

            if chat is None:
                raise NotFoundError("Chat not found", operation="update", table="chats")

        return SendMessageResult(
            user_message=user_message,
            assistant_message=assistant_message,
            chat=chat,
        )
