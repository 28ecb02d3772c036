"""
Session token authentication.

Server routes see a Supabase access token in one of two places: the
``Authorization: Bearer`` header sent by API clients, or the
``sb-access-token`` cookie written by the session bridge after the browser
signs in. The header wins when both are present.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from datetime import datetime, timezone

from shared.models import AuthenticatedUser
from ..config import APISettings, get_settings
from ..models.user import TokenPayload

SUPABASE_AUDIENCE = "authenticated"

bearer_scheme = HTTPBearer(auto_error=False)


class SessionTokenError(HTTPException):
    """401 for a missing, expired or forged session token."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def decode_token(token: str, settings: Optional[APISettings] = None) -> TokenPayload:
    """
    Verify a Supabase access token and return its claims.

    Raises:
        SessionTokenError: If the secret is not configured, or the token is
            expired, malformed or signed with another secret
    """
    settings = settings or get_settings()
    if not settings.supabase_jwt_secret:
        raise SessionTokenError("Server authentication not configured")

    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=SUPABASE_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise SessionTokenError("Token has expired")
    except JWTError as e:
        raise SessionTokenError(f"Invalid token: {e}")

    return TokenPayload(**claims)


def get_user_from_payload(payload: TokenPayload) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=payload.sub,
        email=payload.email,
        email_verified=payload.email_confirmed_at is not None,
        last_sign_in=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload.exp, tz=timezone.utc),
    )


def session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """The bearer token if sent, else the bridged session cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(get_settings().access_cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Dependency for routes that need a signed-in user."""
    token = session_token(request, credentials)
    if token is None:
        raise SessionTokenError("Not signed in")
    return get_user_from_payload(decode_token(token))


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedUser]:
    """
    Dependency for routes that behave differently for signed-in users.

    An unusable token counts as signed out instead of failing the request.
    """
    token = session_token(request, credentials)
    if token is None:
        return None
    try:
        return get_user_from_payload(decode_token(token))
    except SessionTokenError:
        return None
