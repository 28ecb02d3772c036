"""
Profile module data models.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """
    Alumni profile record, one per identity.

    ``is_profile_complete`` only ever moves from False to True.
    """

    id: str = Field(..., description="Profile row id")
    auth_id: str = Field(..., description="Identity id (Session.user_id)")
    email: Optional[str] = Field(None, description="Institutional e-mail")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    usn: Optional[str] = None
    branch: Optional[str] = None
    branch_code: Optional[str] = None
    admission_year: Optional[int] = None
    graduation_year: Optional[int] = None
    is_email_verified: bool = False
    is_profile_complete: bool = False
    role: str = Field(default="user", description="User role")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}


class ProfileFields(BaseModel):
    """Writable profile fields submitted from the profile step."""

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    usn: Optional[str] = None
    branch: Optional[str] = None
    branch_code: Optional[str] = None
    admission_year: Optional[int] = None
    graduation_year: Optional[int] = None

    model_config = {"frozen": True}
