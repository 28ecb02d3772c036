"""
Authentication module exceptions.

Every error the sign-up / sign-in flow can surface to the user is an
``AuthFlowError``. The flow catches these and renders them inline on the
current step; they never crash the flow.
"""

from typing import Optional

from shared.exceptions import AuthenticationError, ExternalServiceError


class AuthFlowError(AuthenticationError):
    """Base for step-local, user-visible authentication failures."""

    default_message = "Authentication failed. Please try again."
    default_code = "AUTH_FAILED"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(
            message or self.default_message,
            code=self.default_code,
            details=details,
        )


class InvalidInputError(AuthFlowError):
    """Raised when local validation fails; never sent to the provider."""

    default_message = "Please check the highlighted fields."
    default_code = "INVALID_INPUT"

    def __init__(self, field: str, message: str):
        super().__init__(message, details={"field": field})
        self.field = field


class InvalidDomainError(AuthFlowError):
    """Raised when the e-mail is not from the institutional domain."""

    default_code = "INVALID_DOMAIN"

    def __init__(self, domain: str):
        super().__init__(
            f"Please use your institutional email (@{domain})",
            details={"domain": domain},
        )


class AlreadyRegisteredError(AuthFlowError):
    """Raised when signing up with an e-mail that already has an identity."""

    default_message = "An account with this email already exists. Please sign in instead."
    default_code = "ALREADY_REGISTERED"


class AccountNotFoundError(AuthFlowError):
    """Raised when signing in with an e-mail that has no identity."""

    default_message = "No account found for this email. Please sign up first."
    default_code = "NOT_FOUND"


class InvalidCredentialsError(AuthFlowError):
    """Raised when e-mail/password sign-in is rejected."""

    default_message = "Invalid email or password."
    default_code = "INVALID_CREDENTIALS"


class EmailNotVerifiedError(AuthFlowError):
    """Raised when the identity exists but its e-mail was never confirmed."""

    default_message = "Please verify your email before signing in."
    default_code = "EMAIL_NOT_VERIFIED"


class InvalidOrExpiredCodeError(AuthFlowError):
    """Raised when a one-time code is wrong, already used, or expired."""

    default_message = "Invalid or expired code. Please try again."
    default_code = "INVALID_OR_EXPIRED_CODE"


class RateLimitedError(AuthFlowError):
    """
    Raised when the provider (or the local cooldown) throttles a request.

    ``retry_after_seconds`` is the precise interval to count down from when
    it is known, None otherwise.
    """

    default_code = "RATE_LIMITED"
    http_status = 429

    def __init__(self, retry_after_seconds: Optional[int] = None, message: Optional[str] = None):
        if message is None:
            if retry_after_seconds:
                message = f"Too many requests. Please wait {retry_after_seconds} seconds."
            else:
                message = "Too many requests. Please wait a moment and try again."
        super().__init__(message, details={"retry_after_seconds": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds


class TooManyAttemptsError(RateLimitedError):
    """Raised locally once the verify-attempt cap is reached for a challenge."""

    default_code = "TOO_MANY_ATTEMPTS"

    def __init__(self, retry_after_seconds: int, attempts: int):
        super().__init__(
            retry_after_seconds,
            f"Too many incorrect codes. Try again in {retry_after_seconds} seconds "
            "or request a new code.",
        )
        self.details["attempts"] = attempts


class ProviderUnavailableError(AuthFlowError):
    """Raised when the identity provider fails for a reason we cannot classify."""

    default_message = "The sign-in service is unavailable. Please try again."
    default_code = "PROVIDER_UNAVAILABLE"
    http_status = 503


class SyncFailedError(AuthFlowError):
    """Raised when the session could not be pushed to the server session bridge."""

    default_message = "Could not establish your session on the server."
    default_code = "SYNC_FAILED"


class NavigationFailedError(AuthFlowError):
    """Raised when both the guarded and the full-page navigation failed."""

    default_code = "NAVIGATION_FAILED"

    def __init__(self, target: str):
        super().__init__(
            f"Could not open {target}. Please reload the page.",
            details={"target": target},
        )
        self.target = target


class IdentityProviderError(ExternalServiceError):
    """
    Raw error reported by the identity provider.

    Carries the provider's ``{message, status?}`` shape; the session
    controller classifies it into one of the ``AuthFlowError`` types.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(
            message,
            service="identity_provider",
            code="IDENTITY_PROVIDER_ERROR",
            details={"status": status},
        )
        self.status = status
