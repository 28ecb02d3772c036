"""
Profile module exceptions.
"""

from shared.exceptions import ConflictError, ExternalServiceError, NotFoundError

from .models import UserProfile


class ProfileConflictError(ConflictError):
    """
    Raised by a profile store when a profile already exists for the identity.

    Carries the existing record; the gateway treats this as success.
    """

    def __init__(self, existing: UserProfile):
        super().__init__(
            f"Profile already exists for identity: {existing.auth_id}",
            code="PROFILE_CONFLICT",
            details={"auth_id": existing.auth_id, "profile_id": existing.id},
        )
        self.existing = existing


class ProfileNotFoundError(NotFoundError):
    """Raised when updating a profile that does not exist."""

    def __init__(self, profile_id: str):
        super().__init__(
            f"Profile not found: {profile_id}",
            code="PROFILE_NOT_FOUND",
            details={"profile_id": profile_id},
        )


class ProfileStoreError(ExternalServiceError):
    """Raised when the profile store fails for any other reason."""

    def __init__(self, message: str):
        super().__init__(message, service="profile_store", code="PROFILE_STORE_ERROR")
