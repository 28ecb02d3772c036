"""
Auth flow data models.

The flow's state is a frozen snapshot; steps receive it read-only and
change it only through ``advance``.
"""

from enum import Enum
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, Field

from shared.exceptions import AlumniVerseError
from modules.auth.models import ProfileSeed

REDIRECT_PARAM = "redirectTo"


class AuthStep(str, Enum):
    """Steps of the authentication flow."""

    LOGIN = "login"
    SIGNUP = "signup"
    OTP = "otp-verification"
    PROFILE = "profile"
    FORGOT_PASSWORD = "forgot-password"
    LOGIN_COMPLETE = "login-complete"


class StepError(BaseModel):
    """A failure rendered inline on the current step."""

    code: str
    message: str
    field: Optional[str] = None
    retry_after_seconds: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def from_exception(cls, error: AlumniVerseError) -> "StepError":
        return cls(
            code=error.code,
            message=error.message,
            field=error.details.get("field"),
            retry_after_seconds=error.details.get("retry_after_seconds"),
        )


class StepData(BaseModel):
    """Data carried between steps."""

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_sign_up: bool = False
    profile_seed: Optional[ProfileSeed] = Field(None, description="Pending sign-up details")
    notice: Optional[str] = Field(None, description="Non-error message for the step")

    model_config = {"frozen": True}


class AuthFlowState(BaseModel):
    """Snapshot of one authentication attempt."""

    step: AuthStep = AuthStep.LOGIN
    step_data: StepData = Field(default_factory=StepData)
    error: Optional[StepError] = None
    redirect_latch: bool = False
    destination: Optional[str] = None
    cooldown_seconds: int = Field(default=0, ge=0)
    verify_attempts: int = Field(default=0, ge=0)
    lockout_seconds: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class RouteInfo(BaseModel):
    """The route that embeds the flow."""

    path: str = "/auth"
    redirect_to: Optional[str] = Field(None, description="Raw redirectTo query parameter")

    model_config = {"frozen": True}

    @classmethod
    def from_url(cls, url: str) -> "RouteInfo":
        """Parse ``/auth?redirectTo=/jobs`` style URLs."""
        parts = urlsplit(url)
        values = parse_qs(parts.query).get(REDIRECT_PARAM)
        return cls(path=parts.path or "/", redirect_to=values[0] if values else None)
