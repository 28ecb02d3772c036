"""
Session sync module.

Bridges a client-side session to server-rendered routes.

Public API:
- ISessionSyncBridge / SessionSyncBridge: HTTP client for the bridge
- routes.router: the bridge endpoints themselves (mounted by api.app)
"""

from .interfaces import ISessionSyncBridge
from .service import SessionSyncBridge

__all__ = [
    "ISessionSyncBridge",
    "SessionSyncBridge",
]
