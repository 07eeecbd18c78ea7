"""
Chat Domain Models for the AI Chat backend

Pure Pydantic models for chat entities.
Snapshots are immutable; changes go through the repository.
"""

from datetime import datetime
from enum import Enum
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict


DEFAULT_CHAT_TITLE = "New Chat"


class MessageRole(str, Enum):
    """Role of the message sender."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Chat(BaseModel):
    """A conversation owned by a single user."""
    id: UUID
    user_id: str
    title: str = DEFAULT_CHAT_TITLE
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class Message(BaseModel):
    """A single append-only turn within a chat."""
    id: UUID
    chat_id: UUID
    role: MessageRole
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class ChatTurn(BaseModel):
    """Role-tagged turn sent to the response generator."""
    role: MessageRole
    content: str

    model_config = ConfigDict(frozen=True)


class SendMessageResult(BaseModel):
    """Entities created or updated by one message exchange."""
    user_message: Message
    assistant_message: Message
    chat: Chat


def build_context(history: List[Message], new_message: Message) -> List[ChatTurn]:
    """
    Build the generator context for a new user message.

    Prior turns are every message except the one just persisted (matched
    by id), followed by the new message exactly once.
    """
    turns = [
        ChatTurn(role=message.role, content=message.content)
        for message in history
        if message.id != new_message.id
    ]
    turns.append(ChatTurn(role=new_message.role, content=new_message.content))
    return turns
