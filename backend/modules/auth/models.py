"""
Authentication module data models.

These models define the data structures owned by the session controller
and handed to the rest of the auth flow as immutable snapshots.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Session(BaseModel):
    """
    An issued identity-provider session.

    Treated as a value: any change (refresh, sign-in as someone else)
    produces a new Session instead of mutating this one.
    """

    user_id: str = Field(..., description="Identity id (UUID from Supabase)")
    email: Optional[str] = Field(None, description="E-mail of the identity")
    access_token: str = Field(..., description="Bearer access token")
    refresh_token: str = Field(..., description="Refresh token")
    expires_at: datetime = Field(..., description="Access token expiry")

    model_config = {"frozen": True}

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Whether the access token has expired."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


class ProviderUser(BaseModel):
    """Minimal user record returned by the identity provider."""

    id: str
    email: Optional[str] = None
    email_confirmed: bool = False
    metadata: dict = Field(default_factory=dict)

    model_config = {"frozen": True}


class ProviderAuthResult(BaseModel):
    """Result of an identity-provider call that may issue a session."""

    user: Optional[ProviderUser] = None
    session: Optional[Session] = None

    model_config = {"frozen": True}


class ChallengeStatus(str, Enum):
    """Lifecycle of a single one-time-code challenge."""

    NO_CHALLENGE = "no-challenge"
    CHALLENGE_SENT = "challenge-sent"
    VERIFIED = "verified"
    EXPIRED = "expired"
    FAILED = "failed"


class OtpChallenge(BaseModel):
    """Snapshot of the current one-time-code challenge."""

    email: Optional[str] = None
    is_sign_up: bool = False
    status: ChallengeStatus = ChallengeStatus.NO_CHALLENGE
    failed_attempts: int = 0
    issued_at: Optional[datetime] = None

    model_config = {"frozen": True}


class ChallengeSent(BaseModel):
    """Returned when a one-time code has been sent (or re-sent)."""

    email: str
    is_sign_up: bool
    sent_at: datetime

    model_config = {"frozen": True}


class ProfileSeed(BaseModel):
    """
    Profile data collected at sign-up.

    Names come from the sign-up form; the rest is parsed from the
    institutional e-mail address when it follows the USN format.
    """

    email: str
    first_name: str = ""
    last_name: str = ""
    usn: Optional[str] = None
    branch: Optional[str] = None
    branch_code: Optional[str] = None
    admission_year: Optional[int] = None
    graduation_year: Optional[int] = None

    model_config = {"frozen": True}

    def to_metadata(self) -> dict:
        """User metadata stored with the identity at sign-up."""
        metadata = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "usn": self.usn,
            "branch": self.branch,
            "branch_code": self.branch_code,
            "admission_year": self.admission_year,
            "graduation_year": self.graduation_year,
        }
        return {key: value for key, value in metadata.items() if value not in (None, "")}


class OtpVerification(BaseModel):
    """
    Returned when a one-time code is accepted.

    ``session_confirmed`` is False when the new session never became
    visible to a fresh session read within the polling window; the flow
    proceeds anyway and shows a recoverable notice.
    """

    session: Session
    is_sign_up: bool
    profile_seed: Optional[ProfileSeed] = None
    session_confirmed: bool = True

    model_config = {"frozen": True}
