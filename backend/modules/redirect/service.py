"""
Redirect guard implementation.

Prevents redirect thrashing between the auth page and protected routes:
nothing happens until both session and profile state are known, and the
completion navigation is issued at most once per flow instance.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from shared.config import Settings, get_settings
from shared.flow_storage import FlowStorage, PENDING_REDIRECT
from modules.auth.exceptions import NavigationFailedError, SyncFailedError
from modules.auth.models import Session
from modules.profiles.service import ProfileGateway
from modules.session_sync.interfaces import ISessionSyncBridge

from .interfaces import FullPageNavigator, IRedirectGuard, Navigator
from .models import NavigationAction, RedirectContext, RedirectDecision

logger = logging.getLogger(__name__)

# Steps on which "no session" is the expected state.
PRE_AUTH_STEPS = frozenset({"login", "signup", "otp-verification", "forgot-password"})


def sanitize_redirect_target(raw: Optional[str], default: str, auth_route: str = "/auth") -> str:
    """
    Return ``raw`` if it is a safe same-origin relative path, else ``default``.

    Absolute and scheme-relative URLs, backslashes, control characters and
    targets pointing back into the auth route are all rejected.
    """
    if not raw:
        return default

    target = raw.strip()
    if not target.startswith("/") or target.startswith("//"):
        return default
    if "\\" in target or any(ord(ch) < 32 or ord(ch) == 127 for ch in target):
        return default

    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return default

    path = parts.path.rstrip("/") or "/"
    if path == auth_route or path.startswith(auth_route + "/"):
        return default

    return target


def decide(
    context: RedirectContext,
    latched: bool,
    default_redirect: str = "/dashboard",
    auth_route: str = "/auth",
) -> RedirectDecision:
    """
    Pure redirect decision.

    Depends only on the context and the latch, so repeated evaluations give
    the same answer until the latch is set.
    """
    if not (context.session_ready and context.profile_ready):
        return RedirectDecision(action=NavigationAction.WAIT, reason="state loading")

    if latched:
        return RedirectDecision(action=NavigationAction.NONE, reason="latched")

    if context.session is None:
        if context.current_step in PRE_AUTH_STEPS:
            return RedirectDecision(action=NavigationAction.NONE, reason="signed out")
        return RedirectDecision(action=NavigationAction.SHOW_LOGIN, reason="no session")

    target = sanitize_redirect_target(context.redirect_to, default_redirect, auth_route)
    profile = context.profile
    if profile is not None and (profile.is_profile_complete or ProfileGateway.is_complete(profile)):
        return RedirectDecision(action=NavigationAction.NAVIGATE, target=target, reason="profile complete")

    return RedirectDecision(action=NavigationAction.SHOW_PROFILE, target=target, reason="profile incomplete")


class RedirectGuard(IRedirectGuard):
    """
    Issues the flow's completion navigation.

    The latch is written synchronously before the first await of the
    navigation path and is never cleared, so a concurrent evaluation that
    starts while sync or navigation is in flight decides NONE.
    """

    def __init__(
        self,
        sync_bridge: ISessionSyncBridge,
        navigator: Navigator,
        full_page_navigator: FullPageNavigator,
        storage: FlowStorage,
        settings: Optional[Settings] = None,
    ):
        self._sync = sync_bridge
        self._navigator = navigator
        self._full_page_navigator = full_page_navigator
        self._storage = storage
        self._settings = settings or get_settings()
        self._latched = False
        self._destination: Optional[str] = None
        self._cancelled = False

    @property
    def latched(self) -> bool:
        return self._latched

    @property
    def destination(self) -> Optional[str]:
        return self._destination

    def cancel(self) -> None:
        self._cancelled = True

    def _sanitize(self, raw: Optional[str]) -> str:
        return sanitize_redirect_target(raw, self._settings.default_redirect, self._settings.auth_route)

    def decide(self, context: RedirectContext) -> RedirectDecision:
        decision = decide(
            context,
            self._latched,
            self._settings.default_redirect,
            self._settings.auth_route,
        )
        if decision.action == NavigationAction.NAVIGATE:
            stashed = self._storage.get(PENDING_REDIRECT)
            if stashed:
                decision = decision.model_copy(update={"target": self._sanitize(stashed)})
        logger.debug(f"Redirect decision on '{context.current_step}': {decision.action.value} ({decision.reason})")
        return decision

    async def evaluate(self, context: RedirectContext) -> RedirectDecision:
        decision = self.decide(context)

        if decision.action == NavigationAction.NAVIGATE:
            await self.navigate(context.session, decision.target)
        elif decision.action == NavigationAction.SHOW_PROFILE:
            self._storage.set(PENDING_REDIRECT, decision.target)

        return decision

    async def complete_after_profile(
        self,
        session: Session,
        redirect_to: Optional[str] = None,
    ) -> RedirectDecision:
        if self._latched:
            return RedirectDecision(action=NavigationAction.NONE, reason="latched")

        target = self._sanitize(self._storage.get(PENDING_REDIRECT) or redirect_to)
        await self.navigate(session, target)
        return RedirectDecision(action=NavigationAction.NAVIGATE, target=target, reason="profile completed")

    async def navigate(self, session: Session, target: str) -> None:
        if self._cancelled:
            return
        if self._latched:
            logger.debug(f"Navigation to {target} suppressed, already latched")
            return
        self._latched = True
        self._destination = target
        self._storage.delete(PENDING_REDIRECT)

        logger.info(f"Completing sign-in for user {session.user_id}, navigating to {target}")
        try:
            await self._sync.sync(session)
        except SyncFailedError as e:
            logger.warning(f"Session sync failed ({e.message}), falling back to full-page navigation")
            await self._fall_back(target)
            return

        if self._cancelled:
            logger.debug(f"Navigation to {target} dropped, flow was unmounted during sync")
            return

        try:
            await self._navigator(target)
        except Exception as e:
            logger.warning(f"Navigation to {target} failed ({e}), falling back to full-page navigation")
            await self._fall_back(target)

    async def _fall_back(self, target: str) -> None:
        if self._cancelled:
            return
        try:
            await self._full_page_navigator(target)
        except Exception as e:
            logger.error(f"Full-page navigation to {target} failed: {e}")
            raise NavigationFailedError(target) from e
