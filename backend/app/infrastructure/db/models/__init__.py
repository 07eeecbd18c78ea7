"""
SQLModel ORM Models for the AI Chat backend

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
    utcnow,
)
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.models.chat import ChatModel
from app.infrastructure.db.models.message import MessageModel
from app.infrastructure.db.models.subscription import SubscriptionModel


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    # Tables
    "UserModel",
    "ChatModel",
    "MessageModel",
    "SubscriptionModel",
]
