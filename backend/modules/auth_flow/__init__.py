"""
Auth flow module.

The state machine that sequences login, sign-up, code verification,
profile completion and the final redirect.

Public API:
- AuthFlowStateMachine: the flow itself
- build_auth_flow: Supabase-backed wiring
- AuthStep, AuthFlowState, StepData, StepError, RouteInfo: models
- Step handlers: LoginStep, SignUpStep, OtpStep, ProfileStep,
  ForgotPasswordStep, CompleteStep
"""

from .exceptions import InvalidTransitionError
from .factory import build_auth_flow
from .models import AuthFlowState, AuthStep, RouteInfo, StepData, StepError
from .service import TRANSITIONS, AuthFlowStateMachine
from .steps import (
    CompleteStep,
    ForgotPasswordStep,
    LoginStep,
    OtpStep,
    ProfileStep,
    SignUpStep,
    Step,
)

__all__ = [
    "AuthFlowStateMachine",
    "build_auth_flow",
    "TRANSITIONS",
    "InvalidTransitionError",
    "AuthFlowState",
    "AuthStep",
    "RouteInfo",
    "StepData",
    "StepError",
    "CompleteStep",
    "ForgotPasswordStep",
    "LoginStep",
    "OtpStep",
    "ProfileStep",
    "SignUpStep",
    "Step",
]
