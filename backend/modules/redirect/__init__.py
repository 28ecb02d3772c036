"""
Redirect module.

Decides where the auth flow goes once session and profile are known, and
issues the completion navigation exactly once.

Public API:
- IRedirectGuard / RedirectGuard
- decide, sanitize_redirect_target: pure helpers
- NavigationAction, RedirectContext, RedirectDecision: models
"""

from .interfaces import FullPageNavigator, IRedirectGuard, Navigator
from .models import NavigationAction, RedirectContext, RedirectDecision
from .service import PRE_AUTH_STEPS, RedirectGuard, decide, sanitize_redirect_target

__all__ = [
    "FullPageNavigator",
    "IRedirectGuard",
    "Navigator",
    "NavigationAction",
    "RedirectContext",
    "RedirectDecision",
    "PRE_AUTH_STEPS",
    "RedirectGuard",
    "decide",
    "sanitize_redirect_target",
]
