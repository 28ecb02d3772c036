"""
AlumniVerse - sign-in and sign-up from the terminal.

Runs the same auth flow the web client embeds: password or one-time-code
sign-in, OTP sign-up with institutional e-mail, profile completion, and the
single guarded redirect at the end. Navigation is printed instead of
performed.
"""

import argparse
import asyncio
import logging
import sys

from rich.prompt import IntPrompt, Prompt

from core.display import console, print_navigation, print_state
from modules.auth_flow import (
    AuthFlowStateMachine,
    AuthStep,
    ForgotPasswordStep,
    LoginStep,
    OtpStep,
    ProfileStep,
    RouteInfo,
    SignUpStep,
    build_auth_flow,
)
from shared.config import get_settings


async def ask(prompt: str, **kwargs) -> str:
    """Prompt without blocking the event loop."""
    return await asyncio.to_thread(Prompt.ask, prompt, **kwargs)


async def ask_int(prompt: str, **kwargs) -> int:
    return await asyncio.to_thread(IntPrompt.ask, prompt, **kwargs)


async def run_step(flow: AuthFlowStateMachine) -> None:
    """Ask for the current step's input and hand it to the step handler."""
    handler = flow.handler()

    if isinstance(handler, LoginStep):
        choice = await ask("[p]assword, [c]ode, [s]ign up, [f]orgot password", choices=["p", "c", "s", "f"], default="c")
        if choice == "s":
            await handler.go_to_sign_up()
        elif choice == "f":
            await handler.go_to_forgot_password()
        else:
            email = await ask("Email", default=handler.state.step_data.email or None)
            if choice == "p":
                password = await ask("Password", password=True)
                await handler.sign_in_with_password(email, password)
            else:
                await handler.request_code(email)

    elif isinstance(handler, SignUpStep):
        choice = await ask("[s]ign up or back to [l]ogin", choices=["s", "l"], default="s")
        if choice == "l":
            await handler.go_to_login()
            return
        email = await ask("Institutional email")
        first_name = await ask("First name")
        last_name = await ask("Last name")
        await handler.submit(email, first_name, last_name)

    elif isinstance(handler, OtpStep):
        code = await ask("Code ([r]esend, [b]ack)")
        if code == "r":
            await handler.resend()
        elif code == "b":
            await handler.back()
        else:
            await handler.verify(code)

    elif isinstance(handler, ProfileStep):
        known = handler.prefill()
        first_name = await ask("First name", default=known.first_name or None)
        last_name = await ask("Last name", default=known.last_name or None)
        branch = await ask("Branch", default=known.branch or None)
        graduation_year = await ask_int("Graduation year", default=known.graduation_year or None)
        await handler.submit(first_name, last_name, branch, graduation_year)

    elif isinstance(handler, ForgotPasswordStep):
        choice = await ask("[s]end reset link or [b]ack", choices=["s", "b"], default="s")
        if choice == "b":
            await handler.back()
        else:
            await handler.send_reset_link(await ask("Email"))


async def run(url: str, initial_step: AuthStep) -> int:
    settings = get_settings()
    finished = asyncio.Event()

    async def navigate(target: str) -> None:
        print_navigation(target)
        finished.set()

    async def navigate_full_page(target: str) -> None:
        print_navigation(target, full_page=True)
        finished.set()

    flow = build_auth_flow(
        navigate,
        navigate_full_page,
        route=RouteInfo.from_url(url),
        initial_step=initial_step,
        settings=settings,
    )

    await flow.mount()
    try:
        while not finished.is_set():
            await flow.wait_idle()
            flow.tick()
            print_state(flow.state)
            if finished.is_set() or flow.state.step == AuthStep.LOGIN_COMPLETE:
                if flow.state.error:
                    return 1
                if finished.is_set():
                    break
                await asyncio.sleep(settings.session_visibility_interval_seconds)
                continue
            await run_step(flow)
    finally:
        flow.unmount()

    console.print("\n[bold green]Done![/bold green]")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="AlumniVerse sign-in from the terminal")
    parser.add_argument(
        "url",
        nargs="?",
        default="/auth",
        help="Route embedding the flow, e.g. '/auth?redirectTo=/jobs'",
    )
    parser.add_argument(
        "--step",
        choices=[step.value for step in AuthStep if step != AuthStep.LOGIN_COMPLETE],
        default=AuthStep.LOGIN.value,
        help="Step to start on (default: login)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL setting)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=(args.log_level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        sys.exit(asyncio.run(run(args.url, AuthStep(args.step))))
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled[/dim]")
        sys.exit(130)
