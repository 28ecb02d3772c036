"""
Authentication module interfaces.

The session controller depends on IIdentityProvider, not on Supabase
directly. Other modules depend on ISessionController, not the concrete
implementation. This enables testing with in-memory fakes.
"""

from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from .models import (
    ChallengeSent,
    OtpChallenge,
    OtpVerification,
    ProfileSeed,
    ProviderAuthResult,
    Session,
)


@runtime_checkable
class IIdentityProvider(Protocol):
    """
    External identity provider (e-mail + password and e-mail OTP).

    Implementations raise IdentityProviderError carrying the provider's
    ``{message, status?}`` error shape.
    """

    async def sign_up(self, email: str, password: str, metadata: dict) -> ProviderAuthResult:
        """Create an identity with a password."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> ProviderAuthResult:
        """Sign in with e-mail and password; issues a session."""
        ...

    async def sign_in_with_otp(
        self,
        email: str,
        create_user: bool = False,
        metadata: Optional[dict] = None,
    ) -> None:
        """
        Send a one-time code to the e-mail.

        Args:
            email: Address to send the code to
            create_user: Whether the provider may create the identity
            metadata: User metadata stored when the identity is created
        """
        ...

    async def verify_otp(self, email: str, code: str) -> ProviderAuthResult:
        """Verify a one-time code; issues a session."""
        ...

    async def reset_password_for_email(self, email: str) -> None:
        """Send a password reset link."""
        ...

    async def update_user(self, password: str) -> None:
        """Change the signed-in user's password."""
        ...

    async def get_session(self) -> Optional[Session]:
        """Read the provider's current session, if any."""
        ...

    async def refresh_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session."""
        ...

    async def sign_out(self) -> None:
        """Revoke the current session."""
        ...


@runtime_checkable
class ISessionController(Protocol):
    """
    Interface for the session controller.

    The controller owns the current Session; everyone else reads snapshots
    through ``session`` / ``subscribe``.
    """

    @property
    def session(self) -> Optional[Session]:
        """Current session snapshot."""
        ...

    @property
    def session_ready(self) -> bool:
        """Whether the session state is known (loaded at least once)."""
        ...

    @property
    def challenge(self) -> OtpChallenge:
        """Current one-time-code challenge snapshot."""
        ...

    def subscribe(self, listener: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        """Listen for session changes; returns an unsubscribe function."""
        ...

    async def load_session(self) -> Optional[Session]:
        """Load the provider's current session."""
        ...

    async def sign_up_with_otp(self, email: str, profile_seed: ProfileSeed) -> ChallengeSent:
        """Start an OTP sign-up challenge."""
        ...

    async def sign_in_with_otp(self, email: str) -> ChallengeSent:
        """Start an OTP sign-in challenge."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in with e-mail and password."""
        ...

    async def verify_otp(
        self,
        email: str,
        code: str,
        profile_seed: Optional[ProfileSeed] = None,
    ) -> OtpVerification:
        """Verify a one-time code and establish the session."""
        ...

    async def resend_otp(self, email: str, is_sign_up: bool) -> ChallengeSent:
        """Send a fresh code, starting a new challenge."""
        ...

    async def refresh_session(self) -> Optional[Session]:
        """Refresh the current session."""
        ...

    async def sign_out(self) -> None:
        """Sign out and clear the session."""
        ...

    async def reset_password(self, email: str) -> None:
        """Send a password reset link."""
        ...

    async def update_password(self, new_password: str) -> None:
        """Change the signed-in user's password."""
        ...


RegistrationLookup = Callable[[str], Awaitable[bool]]
DomainValidator = Callable[[str], bool]
