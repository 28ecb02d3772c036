"""Rich terminal UI components for the auth flow."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from modules.auth_flow.models import AuthFlowState, AuthStep, StepError

console = Console()

STEP_TITLES = {
    AuthStep.LOGIN: "Sign in",
    AuthStep.SIGNUP: "Create your account",
    AuthStep.OTP: "Enter verification code",
    AuthStep.PROFILE: "Complete your profile",
    AuthStep.FORGOT_PASSWORD: "Reset password",
    AuthStep.LOGIN_COMPLETE: "Signing you in",
}


def format_step_name(step: AuthStep) -> str:
    """Human title for a step.

    Example: AuthStep.OTP -> "Enter verification code"
    """
    return STEP_TITLES.get(step, step.value.replace("-", " ").title())


def format_error(error: StepError) -> str:
    """One-line error text, with the countdown when the step is throttled."""
    text = error.message
    if error.retry_after_seconds:
        text += f" (retry in {error.retry_after_seconds}s)"
    return text


def render_state(state: AuthFlowState) -> Panel:
    """Build the panel shown for the current step."""
    body = Text()
    data = state.step_data

    if data.email:
        body.append(f"Email: {data.email}\n", style="dim")

    if state.step == AuthStep.OTP:
        if state.cooldown_seconds:
            body.append(f"Resend available in {state.cooldown_seconds}s\n", style="dim")
        else:
            body.append("You can request a new code\n", style="dim")
        if state.verify_attempts:
            body.append(f"Failed attempts: {state.verify_attempts}\n", style="dim")
        if state.lockout_seconds:
            body.append(f"Too many attempts, wait {state.lockout_seconds}s\n", style="yellow")

    if state.step == AuthStep.LOGIN_COMPLETE and state.destination:
        body.append(f"Redirecting to {state.destination}\n", style="green")

    if data.notice:
        body.append(f"{data.notice}\n", style="cyan")

    if state.error:
        body.append(format_error(state.error), style="red")

    return Panel(body, title=format_step_name(state.step), border_style="blue")


def print_state(state: AuthFlowState) -> None:
    console.print(render_state(state))


def print_navigation(target: str, full_page: bool = False, note: Optional[str] = None) -> None:
    """Print a navigation event."""
    kind = "Full-page navigation" if full_page else "Navigating"
    style = "yellow" if full_page else "green"
    console.print(f"[{style}]{kind} to {target}[/{style}]")
    if note:
        console.print(f"[dim]{note}[/dim]")
