"""
Profile module interfaces.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .models import ProfileFields, UserProfile


@runtime_checkable
class IProfileStore(Protocol):
    """
    Persistence for user profiles, keyed by identity id.

    ``create`` must raise ProfileConflictError(existing) when a profile
    already exists for the same ``auth_id``.
    """

    async def create(self, profile: dict[str, Any]) -> UserProfile:
        """Insert a profile row."""
        ...

    async def find_by_auth_id(self, auth_id: str) -> Optional[UserProfile]:
        """Fetch the profile of an identity."""
        ...

    async def find_by_email(self, email: str) -> Optional[UserProfile]:
        """Fetch a profile by e-mail."""
        ...

    async def update(self, profile_id: str, patch: dict[str, Any]) -> UserProfile:
        """Apply a partial update."""
        ...


@runtime_checkable
class IProfileGateway(Protocol):
    """Interface for profile operations used by the auth flow."""

    @property
    def profile(self) -> Optional[UserProfile]:
        """Current user's profile snapshot."""
        ...

    def is_ready_for(self, auth_id: str) -> bool:
        """Whether the profile of this identity has been loaded."""
        ...

    def subscribe(self, listener: Callable[[Optional[UserProfile]], None]) -> Callable[[], None]:
        """Listen for profile changes."""
        ...

    async def load(self, auth_id: str) -> Optional[UserProfile]:
        """Load the profile of an identity into the holder."""
        ...

    def clear(self) -> None:
        """Mark the holder as known-empty (no signed-in identity)."""
        ...

    async def create_or_fetch(self, auth_id: str, fields: ProfileFields) -> UserProfile:
        """Idempotently create the profile of an identity."""
        ...

    async def complete_profile(self, profile: UserProfile, fields: ProfileFields) -> UserProfile:
        """Fill in missing fields of an existing profile."""
        ...

    async def email_registered(self, email: str) -> bool:
        """Whether a profile already uses this e-mail."""
        ...

    @staticmethod
    def is_complete(profile: Optional[UserProfile]) -> bool:
        """Whether all required fields are present."""
        ...
