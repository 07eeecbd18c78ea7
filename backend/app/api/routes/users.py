"""
User Routes

Profile read and update for the authenticated user.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import get_auth_context, get_user_service
from app.api.responses import success_response
from app.api.routes.auth import serialize_user
from app.domain.user import AuthContext, UserProfileUpdate
from app.infrastructure.services.user_service import UserService


router = APIRouter(prefix="/users")


class UpdateProfileRequest(BaseModel):
    """Request body for profile updates; at least one field is required."""
    display_name: Optional[str] = Field(None, alias="displayName", max_length=255)
    photo_url: Optional[str] = Field(None, alias="photoURL", max_length=2048)

    model_config = ConfigDict(populate_by_name=True)


@router.get("/profile")
async def get_profile(
    auth: AuthContext = Depends(get_auth_context),
    user_service: UserService = Depends(get_user_service),
):
    """Get the authenticated user's profile."""
    user = await user_service.get_user(auth.uid)
    return success_response(
        "Profile retrieved successfully",
        {"user": serialize_user(user, detailed=True)},
    )


@router.put("/profile")
async def update_profile(
    request: UpdateProfileRequest,
    auth: AuthContext = Depends(get_auth_context),
    user_service: UserService = Depends(get_user_service),
):
    """Update display name and/or avatar URL."""
    user = await user_service.update_profile(
        auth.uid,
        UserProfileUpdate(display_name=request.display_name, photo_url=request.photo_url),
    )
    return success_response("Profile updated successfully", {"user": serialize_user(user)})
