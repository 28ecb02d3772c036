"""
Profile gateway implementation.

Owns the current user's profile and exposes the idempotent
``create_or_fetch`` used by the profile step of the auth flow.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from shared.observable import Observable

from .interfaces import IProfileGateway, IProfileStore
from .models import ProfileFields, UserProfile
from .exceptions import ProfileConflictError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "branch", "graduation_year")


class ProfileGateway(IProfileGateway):
    """
    Gateway between the auth flow and the profile store.

    Retried or duplicated creation attempts for the same identity converge on
    one record: the store's conflict is swallowed, and concurrent calls in
    this process share a single in-flight creation.
    """

    def __init__(self, store: IProfileStore):
        self._store = store
        self._profile: Observable[UserProfile] = Observable("profile")
        self._owner: Optional[str] = None
        self._inflight: dict[str, asyncio.Future] = {}

    @staticmethod
    def is_complete(profile: Any) -> bool:
        """True iff first name, last name, branch and graduation year are present."""
        if profile is None:
            return False
        for field in REQUIRED_FIELDS:
            value = getattr(profile, field, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                return False
        return True

    # -------------------------------------------------------------------------
    # Observable holder
    # -------------------------------------------------------------------------

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile.value

    def is_ready_for(self, auth_id: str) -> bool:
        return self._profile.ready and self._owner == auth_id

    def subscribe(self, listener: Callable[[Optional[UserProfile]], None]) -> Callable[[], None]:
        return self._profile.subscribe(listener)

    def _publish(self, auth_id: str, profile: Optional[UserProfile]) -> None:
        if self._owner != auth_id:
            logger.debug(f"Dropping stale profile result for identity {auth_id}")
            return
        self._profile.set(profile)

    async def load(self, auth_id: str) -> Optional[UserProfile]:
        if self._owner != auth_id:
            self._owner = auth_id
            self._profile.mark_loading()

        profile = await self._store.find_by_auth_id(auth_id)
        self._publish(auth_id, profile)
        return profile

    def clear(self) -> None:
        self._owner = None
        self._profile.set(None)

    # -------------------------------------------------------------------------
    # Creation and updates
    # -------------------------------------------------------------------------

    async def create_or_fetch(self, auth_id: str, fields: ProfileFields) -> UserProfile:
        inflight = self._inflight.get(auth_id)
        if inflight is not None:
            logger.debug(f"Joining in-flight profile creation for identity {auth_id}")
            return await asyncio.shield(inflight)

        task = asyncio.ensure_future(self._create_or_fetch(auth_id, fields))
        self._inflight[auth_id] = task
        task.add_done_callback(lambda done: self._forget_inflight(auth_id, done))
        # A cancelled caller must not cancel the creation the others joined.
        return await asyncio.shield(task)

    def _forget_inflight(self, auth_id: str, task: asyncio.Future) -> None:
        if self._inflight.get(auth_id) is task:
            del self._inflight[auth_id]

    async def _create_or_fetch(self, auth_id: str, fields: ProfileFields) -> UserProfile:
        profile = await self._store.find_by_auth_id(auth_id)

        if profile is None:
            values = fields.model_dump(exclude_none=True)
            values.update(
                auth_id=auth_id,
                is_email_verified=True,
                is_profile_complete=self.is_complete(fields),
                role="user",
            )
            try:
                profile = await self._store.create(values)
                logger.info(f"Created profile {profile.id} for identity {auth_id}")
            except ProfileConflictError as e:
                logger.warning(f"Profile for identity {auth_id} already exists, using it")
                profile = e.existing

        if self._owner is None:
            self._owner = auth_id
        self._publish(auth_id, profile)
        return profile

    async def complete_profile(self, profile: UserProfile, fields: ProfileFields) -> UserProfile:
        patch = fields.model_dump(exclude_none=True)
        merged = profile.model_copy(update=patch)
        patch["is_profile_complete"] = profile.is_profile_complete or self.is_complete(merged)

        updated = await self._store.update(profile.id, patch)
        logger.info(f"Updated profile {updated.id} (complete: {updated.is_profile_complete})")
        self._publish(profile.auth_id, updated)
        return updated

    async def email_registered(self, email: str) -> bool:
        return await self._store.find_by_email(email.strip().lower()) is not None
