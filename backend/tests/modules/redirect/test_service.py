import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from modules.auth.exceptions import NavigationFailedError
from modules.auth.models import Session
from modules.profiles.models import UserProfile
from modules.redirect import (
    IRedirectGuard,
    NavigationAction,
    RedirectContext,
    RedirectGuard,
    decide,
    sanitize_redirect_target,
)
from shared.flow_storage import PENDING_REDIRECT
from tests.conftest import BlockingSyncBridge, FakeSyncBridge, RecordingNavigator

SESSION = Session(
    user_id="user-1",
    email="asha@inst.edu",
    access_token="access-1",
    refresh_token="refresh-1",
    expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
)
COMPLETE = UserProfile(
    id="profile-1",
    auth_id="user-1",
    first_name="Asha",
    last_name="Rao",
    branch="Computer Science",
    graduation_year=2027,
    is_profile_complete=True,
)
INCOMPLETE = UserProfile(id="profile-1", auth_id="user-1", first_name="Asha")


def context(**overrides) -> RedirectContext:
    values = {
        "session": SESSION,
        "session_ready": True,
        "profile": COMPLETE,
        "profile_ready": True,
        "current_step": "login",
    }
    values.update(overrides)
    return RedirectContext(**values)


class TestSanitizeRedirectTarget:
    @pytest.mark.parametrize("target", ["/jobs", "/jobs?tab=open", "/authors", "/events/12#rsvp"])
    def test_accepts_relative_paths(self, target):
        assert sanitize_redirect_target(target, "/dashboard") == target

    @pytest.mark.parametrize(
        "target",
        [
            None,
            "",
            "jobs",
            "https://evil.example/jobs",
            "//evil.example",
            "/\\evil.example",
            "/jo\tbs",
            "javascript:alert(1)",
            "/auth",
            "/auth/",
            "/auth?redirectTo=/jobs",
            "/auth/callback",
        ],
    )
    def test_rejects_unsafe_targets(self, target):
        assert sanitize_redirect_target(target, "/dashboard") == "/dashboard"

    def test_custom_auth_route(self):
        assert sanitize_redirect_target("/login", "/home", auth_route="/login") == "/home"
        assert sanitize_redirect_target("/auth", "/home", auth_route="/login") == "/auth"


class TestDecide:
    @pytest.mark.parametrize(
        "overrides",
        [{"session_ready": False}, {"profile_ready": False}, {"session_ready": False, "profile_ready": False}],
    )
    def test_waits_until_both_ready(self, overrides):
        assert decide(context(**overrides), latched=False).action == NavigationAction.WAIT

    def test_waits_even_when_latched(self):
        assert decide(context(profile_ready=False), latched=True).action == NavigationAction.WAIT

    def test_latched_is_none(self):
        assert decide(context(), latched=True).action == NavigationAction.NONE

    @pytest.mark.parametrize("step", ["login", "signup", "otp-verification", "forgot-password"])
    def test_signed_out_on_pre_auth_step(self, step):
        decision = decide(context(session=None, profile=None, current_step=step), latched=False)
        assert decision.action == NavigationAction.NONE

    def test_signed_out_elsewhere_shows_login(self):
        decision = decide(context(session=None, profile=None, current_step="profile"), latched=False)
        assert decision.action == NavigationAction.SHOW_LOGIN

    def test_complete_profile_navigates_to_default(self):
        decision = decide(context(), latched=False)
        assert decision.action == NavigationAction.NAVIGATE
        assert decision.target == "/dashboard"

    def test_complete_profile_navigates_to_redirect_target(self):
        decision = decide(context(redirect_to="/jobs"), latched=False)
        assert decision.target == "/jobs"

    def test_completeness_derived_from_fields(self):
        """A profile with all required fields counts as complete even if the flag lags."""
        profile = COMPLETE.model_copy(update={"is_profile_complete": False})
        assert decide(context(profile=profile), latched=False).action == NavigationAction.NAVIGATE

    @pytest.mark.parametrize("profile", [None, INCOMPLETE])
    def test_missing_or_incomplete_profile_shows_profile(self, profile):
        decision = decide(context(profile=profile, redirect_to="/jobs"), latched=False)
        assert decision.action == NavigationAction.SHOW_PROFILE
        assert decision.target == "/jobs"

    def test_deterministic(self):
        ctx = context(redirect_to="/jobs")
        assert decide(ctx, latched=False) == decide(ctx, latched=False)


@pytest.fixture
def navigator(events):
    return RecordingNavigator("navigate", events)


@pytest.fixture
def full_page(events):
    return RecordingNavigator("full-page", events)


@pytest.fixture
def guard(sync_bridge, navigator, full_page, storage, settings):
    return RedirectGuard(sync_bridge, navigator, full_page, storage, settings=settings)


class TestRedirectGuard:
    def test_satisfies_protocol(self, guard):
        assert isinstance(guard, IRedirectGuard)

    @pytest.mark.asyncio
    async def test_syncs_then_navigates_once(self, guard, events):
        decision = await guard.evaluate(context(redirect_to="/jobs"))

        assert decision.action == NavigationAction.NAVIGATE
        assert events == [("sync", "user-1"), ("navigate", "/jobs")]
        assert guard.latched is True
        assert guard.destination == "/jobs"

    @pytest.mark.asyncio
    async def test_repeated_evaluations_navigate_once(self, guard, navigator):
        for _ in range(3):
            await guard.evaluate(context())

        assert navigator.targets == ["/dashboard"]
        assert guard.decide(context()).action == NavigationAction.NONE

    @pytest.mark.asyncio
    async def test_latched_while_sync_in_flight(self, events, navigator, full_page, storage, settings):
        """An evaluation during the sync await sees the latch."""
        bridge = BlockingSyncBridge(events)
        guard = RedirectGuard(bridge, navigator, full_page, storage, settings=settings)

        first = asyncio.ensure_future(guard.evaluate(context()))
        await asyncio.sleep(0)

        assert guard.latched is True
        second = await guard.evaluate(context())
        assert second.action == NavigationAction.NONE

        bridge.release.set()
        await first
        assert navigator.targets == ["/dashboard"]

    @pytest.mark.asyncio
    async def test_cancel_during_sync_drops_navigation(self, events, navigator, full_page, storage, settings):
        bridge = BlockingSyncBridge(events)
        guard = RedirectGuard(bridge, navigator, full_page, storage, settings=settings)

        pending = asyncio.ensure_future(guard.evaluate(context()))
        await bridge.entered.wait()
        guard.cancel()
        bridge.release.set()
        await pending

        assert events == [("sync", "user-1")]
        assert guard.latched is True
        assert guard.decide(context()).action == NavigationAction.NONE

    @pytest.mark.asyncio
    async def test_cancel_during_failed_sync_skips_full_page(self, events, navigator, full_page, storage, settings):
        bridge = BlockingSyncBridge(events, fail=True)
        guard = RedirectGuard(bridge, navigator, full_page, storage, settings=settings)

        pending = asyncio.ensure_future(guard.navigate(SESSION, "/jobs"))
        await bridge.entered.wait()
        guard.cancel()
        bridge.release.set()
        await pending

        assert events == [("sync", "user-1")]
        assert full_page.targets == []

    @pytest.mark.asyncio
    async def test_cancelled_guard_never_navigates(self, guard, events):
        guard.cancel()

        await guard.navigate(SESSION, "/jobs")

        assert events == []
        assert guard.latched is False

    @pytest.mark.asyncio
    async def test_show_profile_stashes_target(self, guard, storage, navigator):
        decision = await guard.evaluate(context(profile=INCOMPLETE, redirect_to="/jobs"))

        assert decision.action == NavigationAction.SHOW_PROFILE
        assert storage.get(PENDING_REDIRECT) == "/jobs"
        assert navigator.targets == []
        assert guard.latched is False

    @pytest.mark.asyncio
    async def test_stashed_target_used_on_later_navigation(self, guard, storage, navigator):
        storage.set(PENDING_REDIRECT, "/jobs")

        decision = await guard.evaluate(context())

        assert decision.target == "/jobs"
        assert navigator.targets == ["/jobs"]
        assert storage.get(PENDING_REDIRECT) is None

    @pytest.mark.asyncio
    async def test_complete_after_profile(self, guard, storage, navigator):
        storage.set(PENDING_REDIRECT, "/events")

        decision = await guard.complete_after_profile(SESSION, redirect_to="/jobs")

        assert decision.action == NavigationAction.NAVIGATE
        assert decision.target == "/events"
        assert navigator.targets == ["/events"]

    @pytest.mark.asyncio
    async def test_complete_after_profile_sanitizes(self, guard, navigator):
        await guard.complete_after_profile(SESSION, redirect_to="https://evil.example")
        assert navigator.targets == ["/dashboard"]

    @pytest.mark.asyncio
    async def test_complete_after_profile_when_latched(self, guard, navigator):
        await guard.navigate(SESSION, "/jobs")

        decision = await guard.complete_after_profile(SESSION)

        assert decision.action == NavigationAction.NONE
        assert navigator.targets == ["/jobs"]

    @pytest.mark.asyncio
    async def test_sync_failure_falls_back_to_full_page(self, events, navigator, full_page, storage, settings):
        guard = RedirectGuard(FakeSyncBridge(events, fail=True), navigator, full_page, storage, settings=settings)

        await guard.navigate(SESSION, "/jobs")

        assert events == [("sync", "user-1"), ("full-page", "/jobs")]
        assert navigator.targets == []

    @pytest.mark.asyncio
    async def test_navigator_failure_falls_back(self, events, full_page, sync_bridge, storage, settings):
        navigator = RecordingNavigator("navigate", events, fail=True)
        guard = RedirectGuard(sync_bridge, navigator, full_page, storage, settings=settings)

        await guard.navigate(SESSION, "/jobs")

        assert events == [("sync", "user-1"), ("navigate", "/jobs"), ("full-page", "/jobs")]

    @pytest.mark.asyncio
    async def test_both_navigations_fail(self, events, sync_bridge, storage, settings):
        navigator = RecordingNavigator("navigate", events, fail=True)
        full_page = RecordingNavigator("full-page", events, fail=True)
        guard = RedirectGuard(sync_bridge, navigator, full_page, storage, settings=settings)

        with pytest.raises(NavigationFailedError) as exc_info:
            await guard.navigate(SESSION, "/jobs")

        assert exc_info.value.target == "/jobs"
        assert guard.latched is True
