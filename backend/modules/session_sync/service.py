"""
Session sync bridge client.

Sends freshly issued tokens to the server session bridge so that the next
server-rendered page sees the same identity as the client.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from shared.config import Settings, get_settings
from modules.auth.exceptions import SyncFailedError
from modules.auth.models import Session

from .interfaces import ISessionSyncBridge

logger = logging.getLogger(__name__)


class SessionSyncBridge(ISessionSyncBridge):
    """
    HTTP client for ``POST/GET/DELETE {bridge_url}``.

    The bridge endpoint is idempotent, so syncing the same tokens twice is
    harmless. The settle delay after a successful sync tolerates the
    provider's eventual consistency; when ``readback`` is enabled the sync is
    additionally confirmed with a GET on the same cookie jar.
    """

    def __init__(
        self,
        bridge_url: Optional[str] = None,
        settle_delay: Optional[float] = None,
        readback: Optional[bool] = None,
        timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = settings or get_settings()
        self._bridge_url = bridge_url or settings.session_bridge_url
        self._settle_delay = settings.sync_settle_delay_seconds if settle_delay is None else settle_delay
        self._readback = settings.sync_readback if readback is None else readback
        self._timeout = timeout or settings.sync_timeout_seconds
        self._sleep = sleep

    async def sync(self, session: Session) -> None:
        payload = {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._bridge_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {session.access_token}"},
                )
                response.raise_for_status()

                if self._readback:
                    await self._confirm(client, session)
        except SyncFailedError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Session sync for user {session.user_id} failed: {e}")
            raise SyncFailedError(details={"user_id": session.user_id, "reason": str(e)})

        logger.debug(f"Session synced for user {session.user_id}")
        if self._settle_delay > 0:
            await self._sleep(self._settle_delay)

    async def _confirm(self, client: httpx.AsyncClient, session: Session) -> None:
        """Read the bridge back and check it reports the same identity."""
        response = await client.get(self._bridge_url)
        response.raise_for_status()
        data = response.json()

        user = data.get("user") or {}
        if not data.get("has_session") or user.get("id") != session.user_id:
            logger.warning(f"Session readback for user {session.user_id} did not match")
            raise SyncFailedError(
                "The server did not confirm your session.",
                details={"user_id": session.user_id},
            )

    async def clear(self) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.delete(self._bridge_url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Clearing server session failed: {e}")
            raise SyncFailedError(details={"reason": str(e)})
