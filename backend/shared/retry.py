"""
Bounded polling helper.

Used wherever the auth flow has to tolerate eventual consistency of a
dependent system, e.g. waiting for a freshly verified session to become
visible to a fresh session read.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _not_satisfied(result: object) -> bool:
    return not result


async def poll_until(
    check: Callable[[], Awaitable[Optional[T]]],
    attempts: int,
    interval: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[T]:
    """
    Call ``check`` until it returns something truthy or attempts run out.

    Args:
        check: Async callable returning the awaited value, or None/False
               while the value is not visible yet.
        attempts: Maximum number of check calls (at least one is made).
        interval: Seconds to wait between two check calls.
        sleep: Sleep function, injectable for tests.

    Returns:
        The first truthy check result, or None if it never appeared.
        Exceptions raised by ``check`` propagate without a retry.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(interval),
        retry=retry_if_result(_not_satisfied),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        retry_error_callback=lambda state: None,
    )
    return await retrying(check)
