"""
Authentication module.

Owns the current Session and the one-time-code challenge, wrapping the
identity provider (Supabase Auth).

Public API:
- ISessionController / SessionController: sign-up, sign-in, OTP, sign-out
- IIdentityProvider / SupabaseIdentityProvider: provider adapter
- Session, ProfileSeed, OtpVerification, ...: models
- Auth exceptions: the step-local error taxonomy
"""

from .interfaces import IIdentityProvider, ISessionController
from .models import (
    ChallengeSent,
    ChallengeStatus,
    OtpChallenge,
    OtpVerification,
    ProfileSeed,
    ProviderAuthResult,
    ProviderUser,
    Session,
)
from .exceptions import (
    AuthFlowError,
    InvalidInputError,
    InvalidDomainError,
    AlreadyRegisteredError,
    AccountNotFoundError,
    InvalidCredentialsError,
    EmailNotVerifiedError,
    InvalidOrExpiredCodeError,
    RateLimitedError,
    TooManyAttemptsError,
    ProviderUnavailableError,
    SyncFailedError,
    NavigationFailedError,
    IdentityProviderError,
)
from .service import SessionController, classify_provider_error

__all__ = [
    # Interfaces
    "IIdentityProvider",
    "ISessionController",
    # Implementation
    "SessionController",
    "classify_provider_error",
    # Models
    "ChallengeSent",
    "ChallengeStatus",
    "OtpChallenge",
    "OtpVerification",
    "ProfileSeed",
    "ProviderAuthResult",
    "ProviderUser",
    "Session",
    # Exceptions
    "AuthFlowError",
    "InvalidInputError",
    "InvalidDomainError",
    "AlreadyRegisteredError",
    "AccountNotFoundError",
    "InvalidCredentialsError",
    "EmailNotVerifiedError",
    "InvalidOrExpiredCodeError",
    "RateLimitedError",
    "TooManyAttemptsError",
    "ProviderUnavailableError",
    "SyncFailedError",
    "NavigationFailedError",
    "IdentityProviderError",
]
