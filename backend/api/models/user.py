"""
Token models for authentication.

The authenticated user itself lives in shared.models; this module only
describes the Supabase access token claims.
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional


class TokenPayload(BaseModel):
    """Supabase access token payload structure."""
    model_config = ConfigDict(extra="ignore")  # Supabase adds app/user metadata claims

    sub: str  # User ID
    email: str
    email_confirmed_at: Optional[str] = None
    aud: str  # Audience
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp
    role: Optional[str] = None
