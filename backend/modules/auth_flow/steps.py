"""
Step handlers of the auth flow.

Each handler is built with a read-only snapshot of the flow state and the
flow's ``advance`` capability. Handlers call the collaborators they need and
report the outcome by advancing: to the next step on success, or to the
current step with an ``error`` payload on failure.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from shared.exceptions import AlumniVerseError
from modules.auth.exceptions import AuthFlowError, InvalidInputError
from modules.auth.interfaces import ISessionController
from modules.auth.validators import build_profile_seed, normalize_email, validate_name
from modules.otp.interfaces import IOtpVerificationProtocol
from modules.profiles.interfaces import IProfileGateway
from modules.profiles.models import ProfileFields

from .models import AuthFlowState, AuthStep, StepError

logger = logging.getLogger(__name__)

# advance(next_step, payload, origin=step): calls whose origin is no longer
# the current step are dropped by the flow.
Advance = Callable[..., Awaitable[None]]

UNCONFIRMED_SESSION_NOTICE = (
    "You're verified, but we couldn't confirm your session yet. "
    "If nothing happens, refresh the page."
)


class Step:
    """Base class for step handlers."""

    step: AuthStep

    def __init__(self, state: AuthFlowState, advance: Advance):
        self._state = state
        self._advance = advance

    @property
    def state(self) -> AuthFlowState:
        return self._state

    async def _go(self, next_step: AuthStep, payload: Optional[dict[str, Any]]) -> None:
        await self._advance(next_step, payload, origin=self.step)

    async def _fail(self, error: AlumniVerseError, **data: Any) -> None:
        logger.debug(f"Step '{self.step.value}' failed: {error.code}")
        await self._go(self.step, {**data, "error": StepError.from_exception(error)})


class LoginStep(Step):
    step = AuthStep.LOGIN

    def __init__(self, state: AuthFlowState, advance: Advance, controller: ISessionController):
        super().__init__(state, advance)
        self._controller = controller

    async def sign_in_with_password(self, email: str, password: str) -> None:
        try:
            session = await self._controller.sign_in_with_password(email, password)
        except AuthFlowError as e:
            await self._fail(e, email=email)
            return
        await self._go(AuthStep.LOGIN_COMPLETE, {"email": session.email or email})

    async def request_code(self, email: str) -> None:
        try:
            sent = await self._controller.sign_in_with_otp(email)
        except AuthFlowError as e:
            await self._fail(e, email=email)
            return
        await self._go(AuthStep.OTP, {"email": sent.email, "is_sign_up": False, "profile_seed": None})

    async def go_to_sign_up(self) -> None:
        await self._go(AuthStep.SIGNUP, None)

    async def go_to_forgot_password(self) -> None:
        await self._go(AuthStep.FORGOT_PASSWORD, None)


class SignUpStep(Step):
    step = AuthStep.SIGNUP

    def __init__(self, state: AuthFlowState, advance: Advance, controller: ISessionController):
        super().__init__(state, advance)
        self._controller = controller

    async def submit(self, email: str, first_name: str, last_name: str) -> None:
        data = {"email": email, "first_name": first_name, "last_name": last_name}
        try:
            seed = build_profile_seed(normalize_email(email), first_name, last_name)
            sent = await self._controller.sign_up_with_otp(seed.email, seed)
        except AuthFlowError as e:
            await self._fail(e, **data)
            return

        await self._go(
            AuthStep.OTP,
            {
                "email": sent.email,
                "first_name": seed.first_name,
                "last_name": seed.last_name,
                "is_sign_up": True,
                "profile_seed": seed,
            },
        )

    async def go_to_login(self) -> None:
        await self._go(AuthStep.LOGIN, None)


class OtpStep(Step):
    step = AuthStep.OTP

    def __init__(self, state: AuthFlowState, advance: Advance, otp: IOtpVerificationProtocol):
        super().__init__(state, advance)
        self._otp = otp

    async def verify(self, code: str) -> None:
        try:
            result = await self._otp.verify(code, self._state.step_data.profile_seed)
        except AuthFlowError as e:
            await self._fail(e)
            return

        notice = None if result.session_confirmed else UNCONFIRMED_SESSION_NOTICE
        next_step = AuthStep.PROFILE if result.is_sign_up else AuthStep.LOGIN_COMPLETE
        await self._go(next_step, {"notice": notice})

    async def resend(self) -> None:
        try:
            sent = await self._otp.resend()
        except AuthFlowError as e:
            await self._fail(e)
            return
        await self._go(AuthStep.OTP, {"notice": f"A new code was sent to {sent.email}."})

    async def back(self) -> None:
        previous = AuthStep.SIGNUP if self._state.step_data.is_sign_up else AuthStep.LOGIN
        await self._go(previous, {"notice": None})


class ProfileStep(Step):
    step = AuthStep.PROFILE

    def __init__(
        self,
        state: AuthFlowState,
        advance: Advance,
        controller: ISessionController,
        profiles: IProfileGateway,
    ):
        super().__init__(state, advance)
        self._controller = controller
        self._profiles = profiles

    def prefill(self) -> ProfileFields:
        """Fields known before the user types anything."""
        data = self._state.step_data
        seed = data.profile_seed
        profile = self._profiles.profile
        values = seed.model_dump() if seed else {"email": data.email}
        if profile is not None:
            stored = profile.model_dump(include=set(ProfileFields.model_fields), exclude_none=True)
            values.update(stored)
        if not values.get("first_name"):
            values["first_name"] = data.first_name
        if not values.get("last_name"):
            values["last_name"] = data.last_name
        return ProfileFields(**values)

    async def submit(
        self,
        first_name: str,
        last_name: str,
        branch: Optional[str],
        graduation_year: Optional[int],
    ) -> None:
        session = self._controller.session
        if session is None:
            error = StepError(code="SESSION_EXPIRED", message="Your session has expired. Please sign in again.")
            await self._go(AuthStep.LOGIN, {"error": error})
            return

        try:
            first_name = validate_name(first_name, "first_name", "First name")
            last_name = validate_name(last_name, "last_name", "Last name")
            if not branch or not branch.strip():
                raise InvalidInputError("branch", "Branch is required")
            if not graduation_year:
                raise InvalidInputError("graduation_year", "Graduation year is required")

            fields = self.prefill().model_copy(
                update={
                    "email": session.email or self._state.step_data.email,
                    "first_name": first_name,
                    "last_name": last_name,
                    "branch": branch.strip(),
                    "graduation_year": graduation_year,
                }
            )
            profile = await self._profiles.create_or_fetch(session.user_id, fields)
            if not self._profiles.is_complete(profile) or not profile.is_profile_complete:
                profile = await self._profiles.complete_profile(profile, fields)
        except AlumniVerseError as e:
            await self._fail(e, first_name=first_name, last_name=last_name)
            return

        logger.info(f"Profile {profile.id} ready for user {session.user_id}")
        await self._go(AuthStep.LOGIN_COMPLETE, None)


class ForgotPasswordStep(Step):
    step = AuthStep.FORGOT_PASSWORD

    def __init__(self, state: AuthFlowState, advance: Advance, controller: ISessionController):
        super().__init__(state, advance)
        self._controller = controller

    async def send_reset_link(self, email: str) -> None:
        try:
            await self._controller.reset_password(email)
        except AuthFlowError as e:
            await self._fail(e, email=email)
            return
        await self._go(
            AuthStep.FORGOT_PASSWORD,
            {"email": email, "notice": "Check your inbox for a link to reset your password."},
        )

    async def back(self) -> None:
        await self._go(AuthStep.LOGIN, {"notice": None})


class CompleteStep(Step):
    """Shown while the completion navigation is in flight; takes no input."""

    step = AuthStep.LOGIN_COMPLETE

    @property
    def destination(self) -> Optional[str]:
        return self._state.destination
