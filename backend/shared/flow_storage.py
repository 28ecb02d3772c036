"""
Flow-scoped key/value storage.

Holds the small amount of state an authentication attempt needs to survive
between steps: the e-mail awaiting verification and the redirect target to
use once the profile is complete. Entries expire after a TTL.
"""

import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

PENDING_EMAIL = "pending_verification_email"
PENDING_SIGN_UP = "pending_verification_is_sign_up"
PENDING_REDIRECT = "pending_redirect"


class FlowStorage:
    """In-memory storage with per-key expiry."""

    def __init__(self, ttl_seconds: float = 1800, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = (value, self._clock() + ttl)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default

        value, expires_at = entry
        if self._clock() >= expires_at:
            logger.debug(f"Flow storage entry '{key}' expired")
            del self._entries[key]
            return default
        return value

    def pop(self, key: str, default: Any = None) -> Any:
        value = self.get(key, default)
        self._entries.pop(key, None)
        return value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
