"""
Auth Routes

Token verification (sign in / sign up), current user, and sign out.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import get_auth_context, get_user_service
from app.api.responses import success_response
from app.domain.user import AuthContext, User
from app.infrastructure.services.user_service import UserService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


# ============================================================================
# Request/Response Models
# ============================================================================

class VerifyTokenRequest(BaseModel):
    """Request body for token verification."""
    id_token: str = Field(..., alias="idToken", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


def serialize_user(user: User, detailed: bool = False) -> dict:
    """Public user fields, camelCased."""
    body = {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "photoURL": user.photo_url,
        "provider": user.provider.value,
    }
    if detailed:
        body["createdAt"] = user.created_at
        body["lastLoginAt"] = user.last_login_at
    return body


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/verify")
async def verify_token(
    request: VerifyTokenRequest,
    user_service: UserService = Depends(get_user_service),
):
    """Verify a Firebase ID token and sign the user in, creating them if new."""
    user = await user_service.verify_and_sync(request.id_token)
    return success_response("Authentication successful", {"user": serialize_user(user)})


@router.get("/me")
async def get_current_user(
    auth: AuthContext = Depends(get_auth_context),
    user_service: UserService = Depends(get_user_service),
):
    """Get the authenticated user's record."""
    user = await user_service.get_user(auth.uid)
    return success_response(
        "User retrieved successfully",
        {"user": serialize_user(user, detailed=True)},
    )


@router.post("/signout")
async def sign_out(auth: AuthContext = Depends(get_auth_context)):
    """Sign out. Firebase sessions end client-side; this only records the event."""
    logger.info(f"User {auth.uid} signed out")
    return success_response("Signed out successfully")
