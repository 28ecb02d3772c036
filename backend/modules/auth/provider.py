"""
Supabase Auth adapter.

Implements IIdentityProvider on top of the ``auth`` namespace of a
supabase-py client and converts Supabase types into our own models.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from supabase import AuthError, Client

from .exceptions import IdentityProviderError
from .interfaces import IIdentityProvider
from .models import ProviderAuthResult, ProviderUser, Session

logger = logging.getLogger(__name__)


def _to_provider_error(exc: AuthError) -> IdentityProviderError:
    """Reduce a Supabase AuthError to the provider's {message, status?} shape."""
    message = getattr(exc, "message", None) or str(exc)
    status = getattr(exc, "status", None)
    return IdentityProviderError(message, status)


def _map_user(user: Any) -> Optional[ProviderUser]:
    if user is None:
        return None
    return ProviderUser(
        id=str(user.id),
        email=user.email,
        email_confirmed=user.email_confirmed_at is not None,
        metadata=dict(user.user_metadata or {}),
    )


def _map_session(session: Any) -> Optional[Session]:
    if session is None:
        return None

    if session.expires_at:
        expires_at = datetime.fromtimestamp(session.expires_at, tz=timezone.utc)
    else:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=session.expires_in or 3600)

    return Session(
        user_id=str(session.user.id),
        email=session.user.email,
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=expires_at,
    )


def _map_response(response: Any) -> ProviderAuthResult:
    return ProviderAuthResult(
        user=_map_user(response.user),
        session=_map_session(response.session),
    )


class SupabaseIdentityProvider(IIdentityProvider):
    """
    Identity provider backed by Supabase Auth.

    Uses the anon-key client: the signed-in user's session lives inside
    ``client.auth``, exactly as it would in the browser SDK.
    """

    def __init__(self, client: Client):
        self._auth = client.auth

    async def sign_up(self, email: str, password: str, metadata: dict) -> ProviderAuthResult:
        try:
            response = self._auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except AuthError as e:
            raise _to_provider_error(e)
        return _map_response(response)

    async def sign_in_with_password(self, email: str, password: str) -> ProviderAuthResult:
        try:
            response = self._auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            raise _to_provider_error(e)
        return _map_response(response)

    async def sign_in_with_otp(
        self,
        email: str,
        create_user: bool = False,
        metadata: Optional[dict] = None,
    ) -> None:
        options: dict[str, Any] = {"should_create_user": create_user}
        if metadata:
            options["data"] = metadata
        try:
            self._auth.sign_in_with_otp({"email": email, "options": options})
        except AuthError as e:
            raise _to_provider_error(e)

    async def verify_otp(self, email: str, code: str) -> ProviderAuthResult:
        try:
            response = self._auth.verify_otp({"email": email, "token": code, "type": "email"})
        except AuthError as e:
            raise _to_provider_error(e)
        return _map_response(response)

    async def reset_password_for_email(self, email: str) -> None:
        try:
            self._auth.reset_password_for_email(email)
        except AuthError as e:
            raise _to_provider_error(e)

    async def update_user(self, password: str) -> None:
        try:
            self._auth.update_user({"password": password})
        except AuthError as e:
            raise _to_provider_error(e)

    async def get_session(self) -> Optional[Session]:
        try:
            return _map_session(self._auth.get_session())
        except AuthError as e:
            raise _to_provider_error(e)

    async def refresh_session(self, refresh_token: str) -> Session:
        try:
            response = self._auth.refresh_session(refresh_token)
        except AuthError as e:
            raise _to_provider_error(e)

        session = _map_session(response.session)
        if session is None:
            raise IdentityProviderError("Refresh did not return a session", status=401)
        return session

    async def sign_out(self) -> None:
        try:
            self._auth.sign_out()
        except AuthError as e:
            raise _to_provider_error(e)
