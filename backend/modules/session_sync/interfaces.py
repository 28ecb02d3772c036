"""
Session sync module interface.
"""

from typing import Protocol, runtime_checkable

from modules.auth.models import Session


@runtime_checkable
class ISessionSyncBridge(Protocol):
    """Pushes client-side sessions to the server session bridge."""

    async def sync(self, session: Session) -> None:
        """
        Make server-rendered routes recognize the session.

        Returns only after the bridge accepted the tokens and the settle
        delay has elapsed.

        Raises:
            SyncFailedError: If the bridge rejected the tokens or was unreachable
        """
        ...

    async def clear(self) -> None:
        """Drop the server-side session cookies."""
        ...
