"""
Redirect module interfaces.
"""

from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from modules.auth.models import Session
from .models import RedirectContext, RedirectDecision

# Client-side routing; may fail transiently.
Navigator = Callable[[str], Awaitable[None]]
# Unconditional full-page navigation used as the fallback.
FullPageNavigator = Callable[[str], Awaitable[None]]


@runtime_checkable
class IRedirectGuard(Protocol):
    """
    Decides the single navigation out of the auth flow and issues it at most
    once per flow instance.
    """

    @property
    def latched(self) -> bool:
        """Whether the completion navigation has been started."""
        ...

    def decide(self, context: RedirectContext) -> RedirectDecision:
        """Pure decision for the given context and the current latch."""
        ...

    async def evaluate(self, context: RedirectContext) -> RedirectDecision:
        """Decide, then act on NAVIGATE and SHOW_PROFILE."""
        ...

    async def navigate(self, session: Session, target: str) -> None:
        """
        Latch, sync the session, then navigate to ``target``.

        Raises:
            NavigationFailedError: If the full-page fallback failed as well
        """
        ...

    async def complete_after_profile(
        self,
        session: Session,
        redirect_to: Optional[str] = None,
    ) -> RedirectDecision:
        """Finish the flow once the profile step is done."""
        ...

    def cancel(self) -> None:
        """
        Stop any navigation still in flight once its owner is gone.

        The latch stays set; a cancelled guard never navigates again.
        """
        ...
