"""
Profiles module.

Creates, loads and completes the alumni profile of an identity.

Public API:
- IProfileGateway / ProfileGateway: idempotent create-or-fetch, completeness
- IProfileStore / SupabaseProfileStore: persistence
- UserProfile, ProfileFields: models
- ProfileConflictError, ProfileNotFoundError, ProfileStoreError
"""

from .interfaces import IProfileGateway, IProfileStore
from .models import ProfileFields, UserProfile
from .exceptions import ProfileConflictError, ProfileNotFoundError, ProfileStoreError
from .service import ProfileGateway, REQUIRED_FIELDS

__all__ = [
    "IProfileGateway",
    "IProfileStore",
    "ProfileGateway",
    "REQUIRED_FIELDS",
    "ProfileFields",
    "UserProfile",
    "ProfileConflictError",
    "ProfileNotFoundError",
    "ProfileStoreError",
]
