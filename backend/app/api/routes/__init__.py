# API Routes Module
from app.api.routes import (
    auth,
    chats,
    users,
    stripe,
)

__all__ = [
    "auth",
    "chats",
    "users",
    "stripe",
]
