"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
in-memory fakes of the identity provider, the profile store and the session
bridge, a controllable clock, and helpers for Supabase-style test tokens.
"""

import asyncio
import pytest
from datetime import datetime, timezone, timedelta
from typing import Any, Optional
from jose import jwt

from shared.config import Settings
from shared.flow_storage import FlowStorage
from modules.auth.exceptions import IdentityProviderError, SyncFailedError
from modules.auth.models import ProviderAuthResult, ProviderUser, Session
from modules.profiles.exceptions import ProfileConflictError, ProfileNotFoundError
from modules.profiles.models import UserProfile


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

TEST_DOMAIN = "inst.edu"
VALID_CODE = "123456"


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    email_verified: bool = True,
) -> str:
    """
    Create a Supabase-style access token for testing.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        email_verified: Whether the email should be marked as verified

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "email_confirmed_at": now.isoformat() if email_verified else None,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


class FakeClock:
    """Controllable time source for both wall-clock and monotonic readers."""

    def __init__(self, start: Optional[datetime] = None):
        self.start = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        self.elapsed = 0.0
        self.sleeps: list[float] = []

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds

    def monotonic(self) -> float:
        return self.elapsed

    def utcnow(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


class FakeIdentityProvider:
    """
    In-memory identity provider with Supabase-like error messages.

    ``hidden_reads`` makes the next N ``get_session`` calls return None after
    a verification, imitating the provider's eventual consistency.
    """

    def __init__(self, code: str = VALID_CODE):
        self.code = code
        self.users: dict[str, ProviderUser] = {}
        self.passwords: dict[str, str] = {}
        self.codes: dict[str, str] = {}
        self.current: Optional[Session] = None
        self.hidden_reads = 0
        self.calls: list[tuple[str, Any]] = []
        self._failures: dict[str, list[IdentityProviderError]] = {}
        self._issued = 0

    # Test helpers

    def add_user(self, email: str, user_id: Optional[str] = None, password: Optional[str] = None) -> ProviderUser:
        user = ProviderUser(id=user_id or f"user-{len(self.users) + 1}", email=email, email_confirmed=True)
        self.users[email] = user
        if password:
            self.passwords[email] = password
        return user

    def fail_next(self, operation: str, message: str, status: Optional[int] = None) -> None:
        self._failures.setdefault(operation, []).append(IdentityProviderError(message, status))

    def calls_to(self, operation: str) -> list:
        return [args for name, args in self.calls if name == operation]

    def issue_session(self, user: ProviderUser) -> Session:
        self._issued += 1
        return Session(
            user_id=user.id,
            email=user.email,
            access_token=f"access-{self._issued}",
            refresh_token=f"refresh-{self._issued}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    def _record(self, operation: str, args: Any) -> None:
        self.calls.append((operation, args))
        failures = self._failures.get(operation)
        if failures:
            raise failures.pop(0)

    # IIdentityProvider

    async def sign_up(self, email: str, password: str, metadata: dict) -> ProviderAuthResult:
        self._record("sign_up", email)
        if email in self.users:
            raise IdentityProviderError("User already registered", 422)
        user = self.add_user(email, password=password)
        return ProviderAuthResult(user=user, session=None)

    async def sign_in_with_password(self, email: str, password: str) -> ProviderAuthResult:
        self._record("sign_in_with_password", email)
        if self.passwords.get(email) != password:
            raise IdentityProviderError("Invalid login credentials", 400)
        user = self.users[email]
        self.current = self.issue_session(user)
        return ProviderAuthResult(user=user, session=self.current)

    async def sign_in_with_otp(
        self,
        email: str,
        create_user: bool = False,
        metadata: Optional[dict] = None,
    ) -> None:
        self._record("sign_in_with_otp", {"email": email, "create_user": create_user, "metadata": metadata})
        if email not in self.users:
            if not create_user:
                raise IdentityProviderError("Signups not allowed for otp", 422)
            self.add_user(email)
        self.codes[email] = self.code

    async def verify_otp(self, email: str, code: str) -> ProviderAuthResult:
        self._record("verify_otp", {"email": email, "code": code})
        if email not in self.codes or self.codes[email] != code:
            raise IdentityProviderError("Token has expired or is invalid", 403)
        del self.codes[email]
        user = self.users[email]
        self.current = self.issue_session(user)
        return ProviderAuthResult(user=user, session=self.current)

    async def reset_password_for_email(self, email: str) -> None:
        self._record("reset_password_for_email", email)

    async def update_user(self, password: str) -> None:
        self._record("update_user", None)

    async def get_session(self) -> Optional[Session]:
        self._record("get_session", None)
        if self.hidden_reads > 0:
            self.hidden_reads -= 1
            return None
        return self.current

    async def refresh_session(self, refresh_token: str) -> Session:
        self._record("refresh_session", refresh_token)
        if self.current is None or self.current.refresh_token != refresh_token:
            raise IdentityProviderError("Invalid Refresh Token", 401)
        user = next(u for u in self.users.values() if u.id == self.current.user_id)
        self.current = self.issue_session(user)
        return self.current

    async def sign_out(self) -> None:
        self._record("sign_out", None)
        self.current = None


class InMemoryProfileStore:
    """
    Profile store keyed by auth_id with the unique-constraint behaviour of
    the ``users`` table.

    ``insert_concurrently`` stages a row that ``find_by_auth_id`` does not
    see yet but that makes the next ``create`` conflict, as when a second
    tab created the profile a moment earlier.
    """

    def __init__(self):
        self.rows: dict[str, UserProfile] = {}
        self.hidden: dict[str, UserProfile] = {}
        self.create_calls = 0
        self.update_calls = 0
        self._next_id = 0

    def _new_profile(self, values: dict[str, Any]) -> UserProfile:
        self._next_id += 1
        return UserProfile(id=f"profile-{self._next_id}", **values)

    def insert(self, auth_id: str, **values: Any) -> UserProfile:
        profile = self._new_profile({"auth_id": auth_id, **values})
        self.rows[auth_id] = profile
        return profile

    def insert_concurrently(self, auth_id: str, **values: Any) -> UserProfile:
        profile = self._new_profile({"auth_id": auth_id, **values})
        self.hidden[auth_id] = profile
        return profile

    async def create(self, profile: dict[str, Any]) -> UserProfile:
        self.create_calls += 1
        auth_id = profile["auth_id"]
        if auth_id in self.hidden:
            self.rows[auth_id] = self.hidden.pop(auth_id)
        if auth_id in self.rows:
            raise ProfileConflictError(self.rows[auth_id])
        created = self._new_profile(profile)
        self.rows[auth_id] = created
        return created

    async def find_by_auth_id(self, auth_id: str) -> Optional[UserProfile]:
        return self.rows.get(auth_id)

    async def find_by_email(self, email: str) -> Optional[UserProfile]:
        return next((p for p in self.rows.values() if p.email == email), None)

    async def update(self, profile_id: str, patch: dict[str, Any]) -> UserProfile:
        self.update_calls += 1
        for auth_id, profile in self.rows.items():
            if profile.id == profile_id:
                updated = profile.model_copy(update=patch)
                self.rows[auth_id] = updated
                return updated
        raise ProfileNotFoundError(profile_id)


class FakeSyncBridge:
    """Session bridge that records calls into a shared event log."""

    def __init__(self, events: Optional[list] = None, fail: bool = False):
        self.events = events if events is not None else []
        self.fail = fail
        self.synced: list[Session] = []
        self.cleared = 0

    async def sync(self, session: Session) -> None:
        self.events.append(("sync", session.user_id))
        if self.fail:
            raise SyncFailedError()
        self.synced.append(session)

    async def clear(self) -> None:
        self.cleared += 1


class BlockingSyncBridge(FakeSyncBridge):
    """Sync bridge that holds every sync until released."""

    def __init__(self, events: Optional[list] = None, fail: bool = False):
        super().__init__(events, fail)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def sync(self, session: Session) -> None:
        self.entered.set()
        await self.release.wait()
        await super().sync(session)


class RecordingNavigator:
    """Async navigator recording targets; optionally fails."""

    def __init__(self, name: str, events: list, fail: bool = False):
        self.name = name
        self.events = events
        self.fail = fail
        self.targets: list[str] = []

    async def __call__(self, target: str) -> None:
        self.events.append((self.name, target))
        self.targets.append(target)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")


@pytest.fixture
def settings() -> Settings:
    """Settings tuned for tests: institutional test domain, no real waits."""
    return Settings(
        _env_file=None,
        allowed_email_domain=TEST_DOMAIN,
        session_bridge_url="http://testserver/api/auth/session",
        session_visibility_interval_seconds=0.0,
        sync_settle_delay_seconds=0.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def sync_bridge(events) -> FakeSyncBridge:
    return FakeSyncBridge(events)


@pytest.fixture
def storage(clock) -> FlowStorage:
    return FlowStorage(ttl_seconds=1800, clock=clock.monotonic)


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}
