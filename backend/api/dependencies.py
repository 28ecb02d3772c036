"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together the server-side
module implementations. Each module exposes its service through an
interface, and this file creates the concrete implementations.
"""

from typing import TYPE_CHECKING

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.profiles.interfaces import IProfileStore


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. Use reset() to clear them for testing.
    """

    def __init__(self) -> None:
        self._profile_store: "IProfileStore | None" = None

    @property
    def profile_store(self) -> "IProfileStore":
        """Get the profile store, using the service-role client."""
        if self._profile_store is None:
            from modules.profiles.repository import SupabaseProfileStore
            from shared.config import get_settings
            from shared.database import get_supabase_client
            self._profile_store = SupabaseProfileStore(
                get_supabase_client(),
                get_settings().profiles_table,
            )
        return self._profile_store

    def reset(self) -> None:
        """Reset all cached services."""
        self._profile_store = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    The next call to get_container() creates a fresh container. Primarily
    used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions


def get_profile_store() -> "IProfileStore":
    """FastAPI dependency for the profile store."""
    return get_container().profile_store
