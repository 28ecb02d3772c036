"""
User-related endpoints.

Lets server-rendered routes find out who is signed in (bearer token or
bridged session cookie) and whether their profile is complete.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from shared.models import AuthenticatedUser
from modules.profiles.interfaces import IProfileStore
from modules.profiles.models import UserProfile
from modules.profiles.service import ProfileGateway
from ..dependencies import get_profile_store
from ..middleware.auth import get_current_user

router = APIRouter()


class CurrentUserResponse(BaseModel):
    """Current user response model."""

    id: str
    email: EmailStr
    email_verified: bool
    role: str
    is_profile_complete: bool
    profile: Optional[UserProfile] = None


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    store: IProfileStore = Depends(get_profile_store),
) -> CurrentUserResponse:
    """
    Get the current user and their profile.

    Requires authentication.
    """
    profile = await store.find_by_auth_id(user.id)
    complete = profile is not None and (profile.is_profile_complete or ProfileGateway.is_complete(profile))
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        email_verified=user.email_verified,
        role=profile.role if profile else user.role,
        is_profile_complete=complete,
        profile=profile,
    )
