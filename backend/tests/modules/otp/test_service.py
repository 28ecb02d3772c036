import pytest

from modules.auth.exceptions import (
    InvalidInputError,
    InvalidOrExpiredCodeError,
    RateLimitedError,
    TooManyAttemptsError,
)
from modules.auth.service import SessionController
from modules.otp import IOtpVerificationProtocol, OtpState, OtpVerificationProtocol
from shared.flow_storage import PENDING_EMAIL, PENDING_SIGN_UP
from tests.conftest import TEST_DOMAIN, VALID_CODE

EMAIL = f"asha@{TEST_DOMAIN}"
WRONG_CODE = "000000"


@pytest.fixture
def controller(provider, settings, clock):
    provider.add_user(EMAIL)
    return SessionController(provider, settings=settings, clock=clock.utcnow, sleep=clock.sleep)


@pytest.fixture
def otp(controller, storage, settings, clock):
    return OtpVerificationProtocol(controller, storage, settings=settings, clock=clock.monotonic)


async def send_code(controller, otp):
    await controller.sign_in_with_otp(EMAIL)
    otp.start(EMAIL, is_sign_up=False)


class TestOtpState:
    def test_flags(self):
        assert OtpState().can_resend is True
        assert OtpState(cooldown_seconds=3).can_resend is False
        assert OtpState(lockout_seconds=1).locked_out is True


class TestChallengeTracking:
    def test_satisfies_protocol(self, otp):
        assert isinstance(otp, IOtpVerificationProtocol)

    def test_start_arms_cooldown_and_stores_pending_email(self, otp, storage):
        otp.start(EMAIL, is_sign_up=True)

        state = otp.snapshot()
        assert state.email == EMAIL
        assert state.is_sign_up is True
        assert state.cooldown_seconds == 60
        assert state.verify_attempts == 0
        assert storage.get(PENDING_EMAIL) == EMAIL
        assert storage.get(PENDING_SIGN_UP) is True

    def test_resume_has_no_local_cooldown(self, otp):
        otp.resume(EMAIL, is_sign_up=False)
        assert otp.snapshot().cooldown_seconds == 0

    def test_cooldown_counts_down_monotonically(self, otp, clock):
        """Remaining seconds never increase within a challenge."""
        otp.start(EMAIL, is_sign_up=False)
        seen = []
        for _ in range(13):
            seen.append(otp.snapshot().cooldown_seconds)
            clock.advance(5.5)

        assert seen == sorted(seen, reverse=True)
        assert seen[0] == 60
        assert seen[-1] == 0

    @pytest.mark.asyncio
    async def test_operations_require_a_challenge(self, otp):
        with pytest.raises(InvalidInputError) as exc_info:
            await otp.verify(VALID_CODE)
        assert exc_info.value.field == "email"

        with pytest.raises(InvalidInputError):
            await otp.resend()


class TestVerify:
    @pytest.mark.asyncio
    async def test_success_clears_pending_challenge(self, controller, otp, storage):
        await send_code(controller, otp)

        verification = await otp.verify(VALID_CODE)

        assert verification.session.email == EMAIL
        assert storage.get(PENDING_EMAIL) is None
        assert storage.get(PENDING_SIGN_UP) is None

    @pytest.mark.asyncio
    async def test_malformed_code_is_not_counted(self, controller, otp, provider):
        await send_code(controller, otp)

        with pytest.raises(InvalidInputError, match="all 6 digits"):
            await otp.verify("12")

        assert otp.snapshot().verify_attempts == 0
        assert provider.calls_to("verify_otp") == []

    @pytest.mark.asyncio
    async def test_failed_attempts_are_counted(self, controller, otp):
        await send_code(controller, otp)

        with pytest.raises(InvalidOrExpiredCodeError):
            await otp.verify(WRONG_CODE)

        state = otp.snapshot()
        assert state.verify_attempts == 1
        assert state.lockout_seconds == 0

    @pytest.mark.asyncio
    async def test_attempt_cap_and_recovery(self, controller, otp, provider, clock):
        """Three wrong codes lock verification locally until a new code is sent."""
        await send_code(controller, otp)

        for _ in range(3):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp.verify(WRONG_CODE)

        assert otp.snapshot().verify_attempts == 3
        assert otp.snapshot().lockout_seconds == 60

        with pytest.raises(TooManyAttemptsError) as exc_info:
            await otp.verify(VALID_CODE)
        assert exc_info.value.retry_after_seconds == 60
        assert exc_info.value.details["attempts"] == 3
        assert len(provider.calls_to("verify_otp")) == 3

        clock.advance(60)
        await otp.resend()

        state = otp.snapshot()
        assert state.verify_attempts == 0
        assert state.lockout_seconds == 0
        assert state.cooldown_seconds == 60

        verification = await otp.verify(VALID_CODE)
        assert verification.session is not None

    @pytest.mark.asyncio
    async def test_lockout_expires(self, controller, otp, provider, clock):
        await send_code(controller, otp)
        for _ in range(3):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp.verify(WRONG_CODE)

        clock.advance(60)

        await otp.verify(VALID_CODE)
        assert len(provider.calls_to("verify_otp")) == 4


class TestResend:
    @pytest.mark.asyncio
    async def test_blocked_during_cooldown(self, controller, otp, provider, clock):
        await send_code(controller, otp)
        clock.advance(20)

        with pytest.raises(RateLimitedError) as exc_info:
            await otp.resend()

        assert exc_info.value.retry_after_seconds == 40
        assert len(provider.calls_to("sign_in_with_otp")) == 1

    @pytest.mark.asyncio
    async def test_resend_after_cooldown(self, controller, otp, provider, clock):
        await send_code(controller, otp)
        clock.advance(60)

        sent = await otp.resend()

        assert sent.email == EMAIL
        assert len(provider.calls_to("sign_in_with_otp")) == 2
        assert otp.snapshot().cooldown_seconds == 60

    @pytest.mark.asyncio
    async def test_provider_declared_interval(self, controller, otp, provider, clock):
        """A throttled resend counts down exactly the interval the provider named."""
        await controller.sign_in_with_otp(EMAIL)
        otp.resume(EMAIL, is_sign_up=False)
        clock.advance(5)
        provider.fail_next(
            "sign_in_with_otp",
            "For security purposes, you can only request this after 7 seconds",
            429,
        )

        with pytest.raises(RateLimitedError) as exc_info:
            await otp.resend()

        assert exc_info.value.retry_after_seconds == 7
        assert otp.snapshot().cooldown_seconds == 7

        clock.advance(3)
        assert otp.snapshot().cooldown_seconds == 4
        with pytest.raises(RateLimitedError) as exc_info:
            await otp.resend()
        assert exc_info.value.retry_after_seconds == 4
        assert len(provider.calls_to("sign_in_with_otp")) == 2

        clock.advance(4)
        await otp.resend()
        assert len(provider.calls_to("sign_in_with_otp")) == 3

    @pytest.mark.asyncio
    async def test_undeclared_interval_uses_time_since_last_send(self, controller, otp, provider, clock):
        await controller.sign_in_with_otp(EMAIL)
        otp.resume(EMAIL, is_sign_up=False)
        clock.advance(5)
        provider.fail_next("sign_in_with_otp", "Email rate limit exceeded", 429)

        with pytest.raises(RateLimitedError):
            await otp.resend()

        assert otp.snapshot().cooldown_seconds == 7

    @pytest.mark.asyncio
    async def test_unknown_interval_uses_default_cooldown(self, otp, provider, settings):
        otp.resume(EMAIL, is_sign_up=False)
        provider.fail_next("sign_in_with_otp", "Email rate limit exceeded", 429)

        with pytest.raises(RateLimitedError) as exc_info:
            await otp.resend()

        assert exc_info.value.retry_after_seconds == settings.otp_rate_limit_cooldown_seconds
        assert otp.snapshot().cooldown_seconds == 12
