"""
Profile repository for database access.

Encapsulates all Supabase queries and data mapping for the ``users`` table.
The table carries a unique constraint on ``auth_id``; a duplicate insert is
reported as ProfileConflictError carrying the row that won.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.repository import BaseRepository
from .interfaces import IProfileStore
from .models import UserProfile
from .exceptions import ProfileConflictError, ProfileNotFoundError, ProfileStoreError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseProfileStore(BaseRepository[UserProfile], IProfileStore):
    """
    Repository for profile data access.

    Note: This repository does NOT perform authorization checks; Row Level
    Security on the anon-key client restricts rows to the signed-in user.
    """

    async def create(self, profile: dict[str, Any]) -> UserProfile:
        """
        Insert a profile row.

        Raises:
            ProfileConflictError: If a profile already exists for auth_id
            ProfileStoreError: On any other database error
        """
        now = datetime.now(timezone.utc).isoformat()
        row = {**self._to_row(profile), "created_at": now, "updated_at": now}

        try:
            result = self._db.table(self._table).insert(row).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.debug(f"Duplicate profile insert for identity {profile['auth_id']}")
                existing = await self.find_by_auth_id(profile["auth_id"])
                if existing is not None:
                    raise ProfileConflictError(existing)
            raise ProfileStoreError(e.message or str(e))

        return self._map_to_profile(result.data[0])

    async def find_by_auth_id(self, auth_id: str) -> Optional[UserProfile]:
        try:
            result = self._db.table(self._table).select("*").eq("auth_id", auth_id).limit(1).execute()
        except APIError as e:
            raise ProfileStoreError(e.message or str(e))

        if not result.data:
            return None
        return self._map_to_profile(result.data[0])

    async def find_by_email(self, email: str) -> Optional[UserProfile]:
        try:
            result = (
                self._db.table(self._table)
                .select("*")
                .eq("email", email.lower())
                .limit(1)
                .execute()
            )
        except APIError as e:
            raise ProfileStoreError(e.message or str(e))

        if not result.data:
            return None
        return self._map_to_profile(result.data[0])

    async def update(self, profile_id: str, patch: dict[str, Any]) -> UserProfile:
        row = {**self._to_row(patch), "updated_at": datetime.now(timezone.utc).isoformat()}

        try:
            result = self._db.table(self._table).update(row).eq("id", profile_id).execute()
        except APIError as e:
            raise ProfileStoreError(e.message or str(e))

        if not result.data:
            raise ProfileNotFoundError(profile_id)
        return self._map_to_profile(result.data[0])

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_profile(self, data: dict[str, Any]) -> UserProfile:
        """Map a database row to a UserProfile model."""
        return UserProfile(
            id=str(data["id"]),
            auth_id=str(data["auth_id"]),
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            usn=data.get("usn"),
            branch=data.get("branch"),
            branch_code=data.get("branch_code"),
            admission_year=data.get("admission_year"),
            graduation_year=data.get("passing_year", data.get("graduation_year")),
            is_email_verified=bool(data.get("is_email_verified", False)),
            is_profile_complete=bool(data.get("is_profile_complete", False)),
            role=data.get("role") or "user",
            created_at=self._parse_timestamp(data.get("created_at")),
            updated_at=self._parse_timestamp(data.get("updated_at")),
        )

    @staticmethod
    def _to_row(values: dict[str, Any]) -> dict[str, Any]:
        """Map model field names to column names."""
        row = dict(values)
        if "graduation_year" in row:
            row["passing_year"] = row.pop("graduation_year")
        return row

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        if value is None or isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
