"""
Server session bridge endpoints.

Receives tokens from the client after sign-in and stores them as HTTP-only
cookies so that server-rendered routes see the same identity.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from api.config import APISettings, get_settings
from api.middleware.auth import SessionTokenError, decode_token, get_optional_user
from shared.models import AuthenticatedUser

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionTokens(BaseModel):
    """Tokens pushed by the client."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class SessionUser(BaseModel):
    id: str
    email: str


class SessionSyncResponse(BaseModel):
    success: bool
    user: Optional[SessionUser] = None


class SessionStatusResponse(BaseModel):
    has_session: bool
    user: Optional[SessionUser] = None


def _set_cookie(response: Response, settings: APISettings, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/session", response_model=SessionSyncResponse)
async def sync_session(
    tokens: SessionTokens,
    response: Response,
    settings: APISettings = Depends(get_settings),
) -> SessionSyncResponse:
    """
    Store the client's session in cookies.

    Idempotent: posting the same tokens again rewrites the same cookies.
    """
    if not tokens.access_token:
        raise HTTPException(status_code=400, detail="access_token is required")

    try:
        payload = decode_token(tokens.access_token, settings)
    except SessionTokenError as e:
        logger.warning(f"Rejected session sync: {e.detail}")
        raise

    _set_cookie(response, settings, settings.access_cookie_name, tokens.access_token, settings.access_cookie_max_age)
    if tokens.refresh_token:
        _set_cookie(response, settings, settings.refresh_cookie_name, tokens.refresh_token, settings.refresh_cookie_max_age)

    logger.info(f"Session synchronized for user {payload.sub}")
    return SessionSyncResponse(success=True, user=SessionUser(id=payload.sub, email=payload.email))


@router.get("/session", response_model=SessionStatusResponse)
async def get_session_status(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> SessionStatusResponse:
    """Report whether the request carries a valid session."""
    if user is None:
        return SessionStatusResponse(has_session=False)
    return SessionStatusResponse(has_session=True, user=SessionUser(id=user.id, email=user.email))


@router.delete("/session", response_model=SessionSyncResponse)
async def clear_session(
    request: Request,
    response: Response,
    settings: APISettings = Depends(get_settings),
) -> SessionSyncResponse:
    """Drop both session cookies."""
    if settings.access_cookie_name in request.cookies:
        logger.info("Clearing server session")
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
    return SessionSyncResponse(success=True)
