"""
OTP verification data models.
"""

from typing import Optional
from pydantic import BaseModel, Field


class OtpState(BaseModel):
    """Snapshot of the code-entry screen's counters."""

    email: Optional[str] = Field(None, description="E-mail the code was sent to")
    is_sign_up: bool = Field(default=False, description="Whether this challenge creates an account")
    verify_attempts: int = Field(default=0, ge=0, description="Failed verifications in this challenge")
    cooldown_seconds: int = Field(default=0, ge=0, description="Seconds until resend is allowed")
    lockout_seconds: int = Field(default=0, ge=0, description="Seconds until verify is allowed again")

    model_config = {"frozen": True}

    @property
    def can_resend(self) -> bool:
        return self.cooldown_seconds == 0

    @property
    def locked_out(self) -> bool:
        return self.lockout_seconds > 0
