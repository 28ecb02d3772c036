"""
OTP verification protocol.

Client-side limits on top of the session controller's challenge handling:
a resend cooldown (60 s after a send, or the provider's declared interval
after it throttled us) and a cap of three consecutive failed verifications
followed by a lockout.
"""

import logging
import math
import time
from typing import Callable, Optional

from shared.config import Settings, get_settings
from shared.flow_storage import FlowStorage, PENDING_EMAIL, PENDING_SIGN_UP
from modules.auth.exceptions import (
    InvalidInputError,
    InvalidOrExpiredCodeError,
    RateLimitedError,
    TooManyAttemptsError,
)
from modules.auth.interfaces import ISessionController
from modules.auth.models import ChallengeSent, OtpVerification, ProfileSeed

from .interfaces import IOtpVerificationProtocol
from .models import OtpState

logger = logging.getLogger(__name__)


class OtpVerificationProtocol(IOtpVerificationProtocol):
    """
    Tracks one challenge at a time.

    All deadlines are absolute times on an injectable monotonic clock, so the
    remaining seconds never increase within a challenge.
    """

    def __init__(
        self,
        controller: ISessionController,
        storage: FlowStorage,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._controller = controller
        self._storage = storage
        self._settings = settings or get_settings()
        self._clock = clock

        self._email: Optional[str] = None
        self._is_sign_up = False
        self._profile_seed: Optional[ProfileSeed] = None
        self._attempts = 0
        self._cooldown_until = 0.0
        self._lockout_until = 0.0

    # -------------------------------------------------------------------------
    # Challenge tracking
    # -------------------------------------------------------------------------

    def start(self, email: str, is_sign_up: bool, profile_seed: Optional[ProfileSeed] = None) -> None:
        self._track(email, is_sign_up, profile_seed)
        self._cooldown_until = self._clock() + self._settings.otp_resend_cooldown_seconds

    def resume(self, email: str, is_sign_up: bool) -> None:
        self._track(email, is_sign_up, None)
        self._cooldown_until = 0.0

    def _track(self, email: str, is_sign_up: bool, profile_seed: Optional[ProfileSeed]) -> None:
        self._email = email
        self._is_sign_up = is_sign_up
        self._profile_seed = profile_seed
        self._attempts = 0
        self._lockout_until = 0.0
        self._storage.set(PENDING_EMAIL, email)
        self._storage.set(PENDING_SIGN_UP, is_sign_up)

    def _remaining(self, deadline: float) -> int:
        return max(0, math.ceil(deadline - self._clock()))

    def snapshot(self) -> OtpState:
        return OtpState(
            email=self._email,
            is_sign_up=self._is_sign_up,
            verify_attempts=self._attempts,
            cooldown_seconds=self._remaining(self._cooldown_until),
            lockout_seconds=self._remaining(self._lockout_until),
        )

    def _require_challenge(self) -> str:
        if self._email is None:
            raise InvalidInputError("email", "No verification in progress. Please request a new code.")
        return self._email

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def verify(self, code: str, profile_seed: Optional[ProfileSeed] = None) -> OtpVerification:
        email = self._require_challenge()

        code = (code or "").strip()
        length = self._settings.otp_code_length
        if len(code) != length or not code.isdigit():
            raise InvalidInputError("code", f"Please enter all {length} digits")

        max_attempts = self._settings.otp_max_verify_attempts
        if self._attempts >= max_attempts:
            remaining = self._remaining(self._lockout_until)
            if remaining > 0:
                logger.info(f"Verify for {email} rejected locally after {self._attempts} failures")
                raise TooManyAttemptsError(remaining, self._attempts)

        try:
            result = await self._controller.verify_otp(email, code, profile_seed or self._profile_seed)
        except InvalidOrExpiredCodeError:
            self._attempts += 1
            if self._attempts >= max_attempts:
                self._lockout_until = self._clock() + self._settings.otp_lockout_seconds
                logger.info(f"Verify attempts exhausted for {email}, locking for {self._settings.otp_lockout_seconds}s")
            raise

        self._storage.delete(PENDING_EMAIL)
        self._storage.delete(PENDING_SIGN_UP)
        return result

    async def resend(self) -> ChallengeSent:
        email = self._require_challenge()

        remaining = self._remaining(self._cooldown_until)
        if remaining > 0:
            raise RateLimitedError(remaining)

        try:
            sent = await self._controller.resend_otp(email, self._is_sign_up)
        except RateLimitedError as e:
            cooldown = e.retry_after_seconds or self._settings.otp_rate_limit_cooldown_seconds
            self._cooldown_until = self._clock() + cooldown
            logger.info(f"Resend to {email} throttled by provider, cooldown {cooldown}s")
            raise RateLimitedError(cooldown)

        self._attempts = 0
        self._lockout_until = 0.0
        self._cooldown_until = self._clock() + self._settings.otp_resend_cooldown_seconds
        return sent
