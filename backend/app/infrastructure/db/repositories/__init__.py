"""
Repository Layer for the AI Chat backend

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.db.repositories.chat_repository import ChatRepository
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "UserRepository",
    "ChatRepository",
    "SubscriptionRepository",
]
