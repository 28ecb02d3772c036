"""
Redirect decision models.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from modules.auth.models import Session
from modules.profiles.models import UserProfile


class NavigationAction(str, Enum):
    """What the flow should do about the current (session, profile) pair."""

    WAIT = "wait"  # session or profile readiness unknown
    NONE = "none"
    SHOW_LOGIN = "show-login"
    SHOW_PROFILE = "show-profile"
    NAVIGATE = "navigate"


class RedirectContext(BaseModel):
    """Everything a redirect decision depends on."""

    session: Optional[Session] = None
    session_ready: bool = False
    profile: Optional[UserProfile] = None
    profile_ready: bool = False
    current_step: str = Field(default="login", description="Step the flow is showing")
    redirect_to: Optional[str] = Field(None, description="Raw redirectTo query parameter")

    model_config = {"frozen": True}


class RedirectDecision(BaseModel):
    action: NavigationAction
    target: Optional[str] = None
    reason: str = ""

    model_config = {"frozen": True}
