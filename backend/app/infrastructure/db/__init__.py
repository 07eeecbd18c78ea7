"""
Database Infrastructure Package for the AI Chat backend

Exports database utilities and repositories.
"""

from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.repositories import (
    ChatRepository,
    SubscriptionRepository,
    UserRepository,
)


__all__ = [
    "DatabaseManager",
    "ChatRepository",
    "SubscriptionRepository",
    "UserRepository",
]
