"""
Shared infrastructure for the AlumniVerse auth backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- observable: Subscribe/notify value holder
- flow_storage: Flow-scoped key/value storage with expiry
- retry: Bounded polling helper

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, get_supabase_anon_client, reset_client_cache
from .exceptions import (
    AlumniVerseError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
)
from .flow_storage import FlowStorage, PENDING_EMAIL, PENDING_SIGN_UP, PENDING_REDIRECT
from .models import AuthenticatedUser
from .observable import Observable
from .retry import poll_until

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "get_supabase_anon_client",
    "reset_client_cache",
    "AlumniVerseError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "AuthenticatedUser",
    "FlowStorage",
    "PENDING_EMAIL",
    "PENDING_SIGN_UP",
    "PENDING_REDIRECT",
    "Observable",
    "poll_until",
]
