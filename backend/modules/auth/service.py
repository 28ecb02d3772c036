"""
Session controller implementation.

Wraps the identity provider, owns the current Session and the state of the
current one-time-code challenge, and classifies provider errors into the
auth flow's error taxonomy.
"""

import asyncio
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Awaitable, Callable, Optional

from shared.config import Settings, get_settings
from shared.observable import Observable
from shared.retry import poll_until

from .exceptions import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    AuthFlowError,
    EmailNotVerifiedError,
    IdentityProviderError,
    InvalidCredentialsError,
    InvalidDomainError,
    InvalidInputError,
    InvalidOrExpiredCodeError,
    ProviderUnavailableError,
    RateLimitedError,
)
from .interfaces import (
    DomainValidator,
    IIdentityProvider,
    ISessionController,
    RegistrationLookup,
)
from .models import (
    ChallengeSent,
    ChallengeStatus,
    OtpChallenge,
    OtpVerification,
    ProfileSeed,
    Session,
)
from .validators import is_institutional_email, normalize_email, validate_password

logger = logging.getLogger(__name__)


THROTTLE_PHRASES = (
    "rate limit",
    "too many requests",
    "for security purposes",
    "you can only request this after",
)
RETRY_AFTER_PATTERN = re.compile(r"after (\d+) seconds?")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_retry_after(message: str) -> Optional[int]:
    """Extract the "after N seconds" interval from a throttling message."""
    match = RETRY_AFTER_PATTERN.search(message.lower())
    return int(match.group(1)) if match else None


def is_throttled(error: IdentityProviderError) -> bool:
    """Whether the provider error signals throttling."""
    if error.status == 429:
        return True
    message = error.message.lower()
    return any(phrase in message for phrase in THROTTLE_PHRASES)


def classify_provider_error(
    error: IdentityProviderError,
    operation: str,
    retry_after_fallback: Optional[int] = None,
) -> AuthFlowError:
    """
    Map a raw provider error into the auth error taxonomy.

    Args:
        error: The provider's {message, status?} error
        operation: One of "send", "password", "verify", "reset", "update"
        retry_after_fallback: Interval to report for throttling when the
                              provider message does not declare one

    Returns:
        The AuthFlowError to surface on the current step
    """
    message = error.message.lower()

    if is_throttled(error):
        return RateLimitedError(parse_retry_after(error.message) or retry_after_fallback)

    if "already registered" in message or "already been registered" in message or "already exists" in message:
        return AlreadyRegisteredError()

    if "signups not allowed" in message or "user not found" in message:
        return AccountNotFoundError()

    if "email not confirmed" in message:
        return EmailNotVerifiedError()

    if operation == "password" and (
        "invalid login credentials" in message or error.status in (400, 401)
    ):
        return InvalidCredentialsError()

    if operation == "verify" and (
        "expired" in message
        or "invalid" in message
        or (error.status is not None and 400 <= error.status < 500)
    ):
        return InvalidOrExpiredCodeError()

    if error.status is not None and 400 <= error.status < 500:
        return AuthFlowError(error.message)

    return ProviderUnavailableError()


class SessionController(ISessionController):
    """
    Implementation of the session controller.

    Exactly one Session is current at a time; it lives in an Observable so
    the auth flow can react to changes without touching this object's
    internals. Sessions are replaced, never mutated.
    """

    def __init__(
        self,
        provider: IIdentityProvider,
        settings: Optional[Settings] = None,
        domain_validator: Optional[DomainValidator] = None,
        registration_lookup: Optional[RegistrationLookup] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._provider = provider
        self._settings = settings or get_settings()
        self._domain = self._settings.allowed_email_domain
        self._domain_validator = domain_validator or partial(
            is_institutional_email, domain=self._domain
        )
        self._registration_lookup = registration_lookup
        self._clock = clock
        self._sleep = sleep

        self._session: Observable[Session] = Observable("session")
        self._challenge = OtpChallenge()
        self._last_sent_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    @property
    def session(self) -> Optional[Session]:
        return self._session.value

    @property
    def session_ready(self) -> bool:
        return self._session.ready

    @property
    def challenge(self) -> OtpChallenge:
        return self._current_challenge()

    def subscribe(self, listener: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        return self._session.subscribe(listener)

    def _set_session(self, session: Optional[Session]) -> None:
        if self._session.ready and self._session.value == session:
            return
        if session is None:
            logger.debug("Session cleared")
        else:
            logger.debug(f"Session set for user {session.user_id}")
        self._session.set(session)

    async def load_session(self) -> Optional[Session]:
        """Read the provider's current session, refreshing it when expired."""
        try:
            session = await self._provider.get_session()
        except IdentityProviderError as e:
            logger.warning(f"Could not read current session: {e.message}")
            session = None

        self._set_session(session)

        if session is not None and session.is_expired(self._clock()):
            return await self.refresh_session()
        return session

    async def refresh_session(self) -> Optional[Session]:
        """Exchange the refresh token; the session is destroyed when that fails."""
        current = self._session.value
        if current is None:
            return None

        try:
            session = await self._provider.refresh_session(current.refresh_token)
        except IdentityProviderError as e:
            logger.warning(f"Session refresh failed for user {current.user_id}: {e.message}")
            self._set_session(None)
            return None

        self._set_session(session)
        return session

    # -------------------------------------------------------------------------
    # One-time-code challenges
    # -------------------------------------------------------------------------

    def _current_challenge(self) -> OtpChallenge:
        challenge = self._challenge
        if (
            challenge.status in (ChallengeStatus.CHALLENGE_SENT, ChallengeStatus.FAILED)
            and challenge.issued_at is not None
            and self._clock() >= challenge.issued_at + timedelta(seconds=self._settings.otp_lifetime_seconds)
        ):
            challenge = challenge.model_copy(update={"status": ChallengeStatus.EXPIRED})
            self._challenge = challenge
        return challenge

    def _remaining_send_interval(self) -> Optional[int]:
        """Seconds left of the provider's minimum interval between two sends."""
        if self._last_sent_at is None:
            return None
        elapsed = (self._clock() - self._last_sent_at).total_seconds()
        remaining = self._settings.otp_min_resend_interval_seconds - elapsed
        return max(1, math.ceil(remaining)) if remaining > 0 else None

    async def _send_code(
        self,
        email: str,
        is_sign_up: bool,
        metadata: Optional[dict] = None,
    ) -> ChallengeSent:
        try:
            await self._provider.sign_in_with_otp(email, create_user=is_sign_up, metadata=metadata)
        except IdentityProviderError as e:
            error = classify_provider_error(e, "send", self._remaining_send_interval())
            logger.info(f"Sending code to {email} failed: {error.code}")
            raise error

        sent_at = self._clock()
        self._last_sent_at = sent_at
        self._challenge = OtpChallenge(
            email=email,
            is_sign_up=is_sign_up,
            status=ChallengeStatus.CHALLENGE_SENT,
            failed_attempts=0,
            issued_at=sent_at,
        )
        logger.info(f"Sent one-time code to {email} (sign-up: {is_sign_up})")
        return ChallengeSent(email=email, is_sign_up=is_sign_up, sent_at=sent_at)

    def _require_domain(self, email: str) -> None:
        if not self._domain_validator(email):
            raise InvalidDomainError(self._domain)

    async def sign_up_with_otp(self, email: str, profile_seed: ProfileSeed) -> ChallengeSent:
        email = normalize_email(email)
        self._require_domain(email)

        if self._registration_lookup is not None and await self._registration_lookup(email):
            raise AlreadyRegisteredError()

        return await self._send_code(email, is_sign_up=True, metadata=profile_seed.to_metadata())

    async def sign_in_with_otp(self, email: str) -> ChallengeSent:
        email = normalize_email(email)
        self._require_domain(email)
        return await self._send_code(email, is_sign_up=False)

    async def resend_otp(self, email: str, is_sign_up: bool) -> ChallengeSent:
        email = normalize_email(email)
        return await self._send_code(email, is_sign_up=is_sign_up)

    async def verify_otp(
        self,
        email: str,
        code: str,
        profile_seed: Optional[ProfileSeed] = None,
    ) -> OtpVerification:
        email = normalize_email(email)
        code = (code or "").strip()
        length = self._settings.otp_code_length
        if len(code) != length or not code.isdigit():
            raise InvalidInputError("code", f"Please enter all {length} digits")

        challenge = self._current_challenge()
        same_challenge = challenge.email == email
        if same_challenge and challenge.status in (ChallengeStatus.VERIFIED, ChallengeStatus.EXPIRED):
            raise InvalidOrExpiredCodeError()

        try:
            result = await self._provider.verify_otp(email, code)
        except IdentityProviderError as e:
            error = classify_provider_error(e, "verify")
            if same_challenge and isinstance(error, InvalidOrExpiredCodeError):
                self._challenge = challenge.model_copy(
                    update={
                        "status": ChallengeStatus.FAILED,
                        "failed_attempts": challenge.failed_attempts + 1,
                    }
                )
            raise error

        if result.session is None:
            raise InvalidOrExpiredCodeError()

        is_sign_up = challenge.is_sign_up if same_challenge else profile_seed is not None
        self._challenge = OtpChallenge(
            email=email,
            is_sign_up=is_sign_up,
            status=ChallengeStatus.VERIFIED,
            failed_attempts=challenge.failed_attempts if same_challenge else 0,
            issued_at=challenge.issued_at if same_challenge else self._clock(),
        )
        # The session is published only after the visibility poll ends.
        visible = await self._confirm_session_visible(result.session)
        session = visible or result.session
        self._set_session(session)
        return OtpVerification(
            session=session,
            is_sign_up=is_sign_up,
            profile_seed=profile_seed,
            session_confirmed=visible is not None,
        )

    async def _confirm_session_visible(self, session: Session) -> Optional[Session]:
        """Poll the provider until a fresh session read returns the new session."""

        async def check() -> Optional[Session]:
            try:
                visible = await self._provider.get_session()
            except IdentityProviderError:
                return None
            if visible is not None and visible.user_id == session.user_id:
                return visible
            return None

        visible = await poll_until(
            check,
            attempts=self._settings.session_visibility_attempts,
            interval=self._settings.session_visibility_interval_seconds,
            sleep=self._sleep,
        )

        if visible is None:
            logger.warning(f"Session for user {session.user_id} not visible after verification")
        return visible

    # -------------------------------------------------------------------------
    # Password operations
    # -------------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        if not password:
            raise InvalidInputError("password", "Password is required")

        try:
            result = await self._provider.sign_in_with_password(email, password)
        except IdentityProviderError as e:
            raise classify_provider_error(e, "password")

        if result.session is None:
            raise EmailNotVerifiedError()

        self._set_session(result.session)
        logger.info(f"Signed in user {result.session.user_id} with password")
        return result.session

    async def reset_password(self, email: str) -> None:
        email = normalize_email(email)
        try:
            await self._provider.reset_password_for_email(email)
        except IdentityProviderError as e:
            raise classify_provider_error(e, "reset", self._remaining_send_interval())
        logger.info(f"Sent password reset link to {email}")

    async def update_password(self, new_password: str) -> None:
        problems = validate_password(new_password)
        if problems:
            raise InvalidInputError("password", ", ".join(problems))
        if self._session.value is None:
            raise InvalidCredentialsError("Your reset link has expired. Please request a new one.")

        try:
            await self._provider.update_user(new_password)
        except IdentityProviderError as e:
            raise classify_provider_error(e, "update")

    async def sign_out(self) -> None:
        """Clear the session; a provider failure is reported after clearing."""
        current = self._session.value
        self._challenge = OtpChallenge()
        try:
            await self._provider.sign_out()
        except IdentityProviderError as e:
            logger.warning(f"Provider sign-out failed: {e.message}")
            self._set_session(None)
            raise ProviderUnavailableError()

        self._set_session(None)
        if current is not None:
            logger.info(f"Signed out user {current.user_id}")
