"""
Auth flow state machine.

Sequences the steps of one authentication attempt. The machine owns the
flow state exclusively; steps get a snapshot plus ``advance``. Session and
profile changes arrive through subscriptions and each schedules its own
redirect evaluation, so several evaluations can be pending at once; the
redirect guard's latch keeps the completion navigation single.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from shared.config import Settings, get_settings
from shared.exceptions import AlumniVerseError
from shared.flow_storage import FlowStorage, PENDING_EMAIL, PENDING_REDIRECT, PENDING_SIGN_UP
from shared.observable import Observable
from modules.auth.exceptions import NavigationFailedError, ProviderUnavailableError, SyncFailedError
from modules.auth.interfaces import ISessionController
from modules.auth.models import Session
from modules.otp.interfaces import IOtpVerificationProtocol
from modules.profiles.interfaces import IProfileGateway
from modules.profiles.models import UserProfile
from modules.redirect.interfaces import IRedirectGuard
from modules.redirect.models import NavigationAction, RedirectContext, RedirectDecision
from modules.session_sync.interfaces import ISessionSyncBridge

from .exceptions import InvalidTransitionError
from .models import AuthFlowState, AuthStep, RouteInfo, StepData, StepError
from .steps import (
    CompleteStep,
    ForgotPasswordStep,
    LoginStep,
    OtpStep,
    ProfileStep,
    SignUpStep,
    Step,
)

logger = logging.getLogger(__name__)

TRANSITIONS: dict[AuthStep, frozenset[AuthStep]] = {
    AuthStep.LOGIN: frozenset({
        AuthStep.SIGNUP,
        AuthStep.OTP,
        AuthStep.FORGOT_PASSWORD,
        AuthStep.LOGIN_COMPLETE,
        AuthStep.PROFILE,
    }),
    AuthStep.SIGNUP: frozenset({AuthStep.LOGIN, AuthStep.OTP, AuthStep.PROFILE, AuthStep.LOGIN_COMPLETE}),
    AuthStep.OTP: frozenset({AuthStep.LOGIN, AuthStep.SIGNUP, AuthStep.PROFILE, AuthStep.LOGIN_COMPLETE}),
    AuthStep.PROFILE: frozenset({AuthStep.LOGIN_COMPLETE, AuthStep.LOGIN}),
    AuthStep.FORGOT_PASSWORD: frozenset({AuthStep.LOGIN}),
    AuthStep.LOGIN_COMPLETE: frozenset({AuthStep.PROFILE, AuthStep.LOGIN}),
}


class AuthFlowStateMachine:
    """
    One mounted authentication flow.

    After ``unmount`` every pending callback is a no-op: the liveness flag is
    checked after each await before the state is touched.
    """

    def __init__(
        self,
        controller: ISessionController,
        profiles: IProfileGateway,
        otp: IOtpVerificationProtocol,
        guard: IRedirectGuard,
        sync_bridge: ISessionSyncBridge,
        storage: FlowStorage,
        route: Optional[RouteInfo] = None,
        initial_step: AuthStep = AuthStep.LOGIN,
        settings: Optional[Settings] = None,
    ):
        self._controller = controller
        self._profiles = profiles
        self._otp = otp
        self._guard = guard
        self._sync = sync_bridge
        self._storage = storage
        self._route = route or RouteInfo()
        self._settings = settings or get_settings()

        self._state: Observable[AuthFlowState] = Observable("auth_flow")
        self._state.set(AuthFlowState(step=initial_step))
        self._alive = False
        self._unsubscribers: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> AuthFlowState:
        return self._state.value

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def route(self) -> RouteInfo:
        return self._route

    def subscribe(self, listener: Callable[[Optional[AuthFlowState]], None]) -> Callable[[], None]:
        return self._state.subscribe(listener)

    def _update(self, **changes: Any) -> None:
        if not self._alive:
            return
        current = self._state.value
        updated = current.model_copy(update=changes)
        if updated.step != current.step:
            logger.debug(f"Auth flow: {current.step.value} -> {updated.step.value}")
        self._state.set(updated)

    def _context(self) -> RedirectContext:
        session = self._controller.session
        return RedirectContext(
            session=session,
            session_ready=self._controller.session_ready,
            profile=self._profiles.profile,
            profile_ready=session is None or self._profiles.is_ready_for(session.user_id),
            current_step=self.state.step.value,
            redirect_to=self._route.redirect_to,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def mount(self) -> None:
        self._alive = True
        if self.state.step == AuthStep.OTP:
            self._restore_pending_challenge()

        await self._controller.load_session()
        if not self._alive:
            return

        self._unsubscribers = [
            self._controller.subscribe(self._on_session_changed),
            self._profiles.subscribe(self._on_profile_changed),
        ]
        await self._session_changed(self._controller.session)

    def unmount(self) -> None:
        self._alive = False
        self._guard.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        logger.debug("Auth flow unmounted")

    async def wait_idle(self) -> None:
        """Wait for every scheduled evaluation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _restore_pending_challenge(self) -> None:
        email = self._storage.get(PENDING_EMAIL)
        if email is None:
            logger.debug("No pending verification to resume, showing login")
            self._update(step=AuthStep.LOGIN)
            return

        is_sign_up = bool(self._storage.get(PENDING_SIGN_UP, False))
        self._otp.resume(email, is_sign_up)
        self._update(step_data=StepData(email=email, is_sign_up=is_sign_up))
        self.tick()

    # -------------------------------------------------------------------------
    # Reactions to holder changes
    # -------------------------------------------------------------------------

    def _spawn(self, factory: Callable[[], Awaitable[Any]]) -> None:
        if not self._alive:
            return
        task = asyncio.ensure_future(factory())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Auth flow task failed: {task.exception()!r}")

    def _on_session_changed(self, session: Optional[Session]) -> None:
        self._spawn(lambda: self._session_changed(session))

    def _on_profile_changed(self, profile: Optional[UserProfile]) -> None:
        self._spawn(self._evaluate)

    async def _session_changed(self, session: Optional[Session]) -> None:
        if session is None:
            self._profiles.clear()
        else:
            try:
                await self._profiles.load(session.user_id)
            except AlumniVerseError as e:
                logger.warning(f"Loading profile for user {session.user_id} failed: {e.message}")
                self._update(error=StepError.from_exception(e))
                return
            if not self._alive:
                return
        await self._evaluate()

    async def _evaluate(self) -> RedirectDecision:
        if not self._alive:
            return RedirectDecision(action=NavigationAction.NONE, reason="unmounted")

        decision = self._guard.decide(self._context())

        if decision.action == NavigationAction.SHOW_LOGIN:
            self._update(step=AuthStep.LOGIN, step_data=StepData(), error=None)
        elif decision.action == NavigationAction.SHOW_PROFILE:
            self._stash_redirect(decision.target)
            if self.state.step != AuthStep.PROFILE:
                self._update(step=AuthStep.PROFILE, error=None)
        elif decision.action == NavigationAction.NAVIGATE:
            await self._navigate(decision.target)

        return decision

    def _stash_redirect(self, target: Optional[str]) -> None:
        if target:
            self._storage.set(PENDING_REDIRECT, target)

    async def _navigate(self, target: str) -> None:
        session = self._controller.session
        self._update(step=AuthStep.LOGIN_COMPLETE, redirect_latch=True, destination=target, error=None)
        try:
            await self._guard.navigate(session, target)
        except NavigationFailedError as e:
            if self._alive:
                self._update(error=StepError.from_exception(e))

    async def _complete_after_profile(self) -> None:
        session = self._controller.session
        if session is None:
            self._update(step=AuthStep.LOGIN, step_data=StepData())
            return

        profile = self._profiles.profile
        if profile is None or not (profile.is_profile_complete or self._profiles.is_complete(profile)):
            logger.warning(f"Profile for user {session.user_id} is not complete, staying on the profile step")
            self._update(step=AuthStep.PROFILE)
            return

        self._update(redirect_latch=True)
        try:
            decision = await self._guard.complete_after_profile(session, self._route.redirect_to)
        except NavigationFailedError as e:
            self._update(error=StepError.from_exception(e), destination=e.target)
            return
        if decision.target:
            self._update(destination=decision.target)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def advance(
        self,
        next_step: AuthStep,
        payload: Optional[dict[str, Any]] = None,
        origin: Optional[AuthStep] = None,
    ) -> None:
        """
        Move to ``next_step``.

        ``payload`` updates the step data; its optional ``error`` key sets
        (or, on a step change, replaces) the step-local error. ``origin`` is
        the step of the handler snapshot making the call; the call is dropped
        when the flow has moved on since that snapshot was taken.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if not self._alive:
            return

        current = self.state.step
        if origin is not None and AuthStep(origin) != current:
            logger.debug(f"Dropping advance from stale {AuthStep(origin).value} step, flow is on {current.value}")
            return

        next_step = AuthStep(next_step)
        if next_step != current and next_step not in TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, next_step.value)

        if self._guard.latched and next_step not in (AuthStep.LOGIN, AuthStep.LOGIN_COMPLETE):
            logger.debug(f"Ignoring advance to {next_step.value}, flow already completing")
            return

        payload = dict(payload or {})
        error = payload.pop("error", None)
        step_data = self.state.step_data.model_copy(update=payload)

        if next_step == current:
            self._update(step_data=step_data, error=error)
            if current == AuthStep.OTP:
                self.tick()
            return

        if next_step == AuthStep.OTP:
            self._otp.start(step_data.email, step_data.is_sign_up, step_data.profile_seed)
        elif next_step == AuthStep.LOGIN and current == AuthStep.OTP:
            self._storage.delete(PENDING_EMAIL)
            self._storage.delete(PENDING_SIGN_UP)

        self._update(step=next_step, step_data=step_data, error=error)
        if next_step == AuthStep.OTP:
            self.tick()

        if next_step == AuthStep.LOGIN_COMPLETE:
            if current == AuthStep.PROFILE:
                await self._complete_after_profile()
            else:
                await self._evaluate()

    def tick(self) -> None:
        """Refresh the OTP counters shown on the code-entry step."""
        snapshot = self._otp.snapshot()
        self._update(
            cooldown_seconds=snapshot.cooldown_seconds,
            verify_attempts=snapshot.verify_attempts,
            lockout_seconds=snapshot.lockout_seconds,
        )

    async def sign_out(self) -> None:
        """Sign out, drop the server session and return to the login step."""
        error = None
        try:
            await self._controller.sign_out()
        except ProviderUnavailableError as e:
            error = StepError.from_exception(e)

        try:
            await self._sync.clear()
        except SyncFailedError as e:
            logger.warning(f"Server session not cleared: {e.message}")

        self._storage.clear()
        if self._alive:
            self._update(step=AuthStep.LOGIN, step_data=StepData(), error=error)

    # -------------------------------------------------------------------------
    # Step handlers
    # -------------------------------------------------------------------------

    def handler(self) -> Step:
        """Handler for the current step, bound to a snapshot of the state."""
        state = self.state
        step = state.step
        if step == AuthStep.LOGIN:
            return LoginStep(state, self.advance, self._controller)
        if step == AuthStep.SIGNUP:
            return SignUpStep(state, self.advance, self._controller)
        if step == AuthStep.OTP:
            return OtpStep(state, self.advance, self._otp)
        if step == AuthStep.PROFILE:
            return ProfileStep(state, self.advance, self._controller, self._profiles)
        if step == AuthStep.FORGOT_PASSWORD:
            return ForgotPasswordStep(state, self.advance, self._controller)
        return CompleteStep(state, self.advance)
