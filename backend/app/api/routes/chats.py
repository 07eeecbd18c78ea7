"""
Chat Routes for the AI Chat backend

API endpoints for chat and message management.
All routes require authentication and act only on the caller's chats.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from app.api.dependencies import get_auth_context, get_chat_service
from app.api.responses import created_response, success_response
from app.domain.chat import Chat, Message
from app.domain.user import AuthContext
from app.infrastructure.services.chat_service import ChatService


router = APIRouter(prefix="/chats")


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateChatRequest(BaseModel):
    """Request to create a new chat."""
    title: Optional[str] = Field(None, max_length=255)


class SendMessageRequest(BaseModel):
    """Request to send a user message."""
    content: Optional[str] = None


class UpdateChatRequest(BaseModel):
    """Request to rename a chat."""
    title: Optional[str] = Field(None, max_length=255)


def serialize_chat(chat: Chat, include_created: bool = True) -> dict:
    body = {"id": str(chat.id), "title": chat.title}
    if include_created:
        body["createdAt"] = chat.created_at
    body["updatedAt"] = chat.updated_at
    return body


def serialize_message(message: Message) -> dict:
    return {
        "id": str(message.id),
        "role": message.role.value,
        "content": message.content,
        "timestamp": message.created_at,
    }


# ============================================================================
# Chat Endpoints
# ============================================================================

@router.post("")
async def create_chat(
    request: Optional[CreateChatRequest] = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Create a new chat; the title defaults to "New Chat"."""
    chat = await chat_service.create_chat(auth.uid, request.title if request else None)
    return created_response("Chat created successfully", {"chat": serialize_chat(chat)})


@router.get("")
async def list_chats(
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    List the caller's chats.

    Returns chats ordered by most recently updated.
    """
    chats = await chat_service.get_user_chats(auth.uid)
    return success_response(
        "Chats retrieved successfully",
        {"chats": [serialize_chat(chat) for chat in chats]},
    )


@router.get("/{chat_id}")
async def get_chat(
    chat_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Get a specific chat."""
    chat = await chat_service.get_chat(chat_id, auth.uid)
    return success_response("Chat retrieved successfully", {"chat": serialize_chat(chat)})


@router.patch("/{chat_id}")
async def update_chat_title(
    chat_id: UUID,
    request: UpdateChatRequest,
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Rename a chat."""
    chat = await chat_service.update_chat_title(chat_id, auth.uid, request.title)
    return success_response(
        "Chat title updated successfully",
        {"chat": serialize_chat(chat, include_created=False)},
    )


@router.delete("/{chat_id}")
async def delete_chat(
    chat_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Delete a chat and all its messages."""
    await chat_service.delete_chat(chat_id, auth.uid)
    return success_response("Chat deleted successfully")


# ============================================================================
# Message Endpoints
# ============================================================================

@router.get("/{chat_id}/messages")
async def get_chat_messages(
    chat_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Get all messages in a chat, oldest first."""
    messages = await chat_service.get_chat_messages(chat_id, auth.uid)
    return success_response(
        "Messages retrieved successfully",
        {"messages": [serialize_message(message) for message in messages]},
    )


@router.post("/{chat_id}/messages")
async def send_message(
    chat_id: UUID,
    request: SendMessageRequest,
    auth: AuthContext = Depends(get_auth_context),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Send a message and get the assistant's reply."""
    result = await chat_service.send_message(chat_id, auth.uid, request.content or "")
    return success_response(
        "Message sent successfully",
        {
            "userMessage": serialize_message(result.user_message),
            "aiMessage": serialize_message(result.assistant_message),
            "chat": serialize_chat(result.chat, include_created=False),
        },
    )
