"""
OTP module interface.
"""

from typing import Optional, Protocol, runtime_checkable

from modules.auth.models import ChallengeSent, OtpVerification, ProfileSeed
from .models import OtpState


@runtime_checkable
class IOtpVerificationProtocol(Protocol):
    """
    Interface for the code-entry protocol.

    Sits between the OTP step and the session controller and adds the
    client-side limits: resend cooldown and the verify-attempt cap.
    """

    def start(self, email: str, is_sign_up: bool, profile_seed: Optional[ProfileSeed] = None) -> None:
        """Begin tracking a challenge that was just sent."""
        ...

    def resume(self, email: str, is_sign_up: bool) -> None:
        """Track a challenge sent earlier, whose send time is unknown."""
        ...

    async def verify(self, code: str, profile_seed: Optional[ProfileSeed] = None) -> OtpVerification:
        """
        Verify a code.

        Raises:
            InvalidInputError: Code is not well-formed (not counted)
            TooManyAttemptsError: Attempt cap reached and lockout running
            InvalidOrExpiredCodeError: Provider rejected the code (counted)
        """
        ...

    async def resend(self) -> ChallengeSent:
        """
        Send a new code, starting a new challenge.

        Raises:
            RateLimitedError: Cooldown running, or the provider throttled
        """
        ...

    def snapshot(self) -> OtpState:
        """Current counters."""
        ...
