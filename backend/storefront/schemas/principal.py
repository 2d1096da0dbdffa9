"""
storefront/schemas/principal.py
The signed-in Principal and the derived AdminProfile.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    email: Optional[str] = Field(None, description="E-mail (if any)")
    phone_number: Optional[str] = Field(None, description="Phone number in E.164 (if any)")
    display_name: Optional[str] = Field(None, description="Display name (if any)")


class AdminProfile(BaseModel):
    """Authorization record derived from `admins/{uid}`; never stored as-is."""
    active: bool = False
    role: str = "admin"
    categories: List[str] = Field(default_factory=list, description="Normalized shop categories")
    email: str = ""


class SessionOut(BaseModel):
    user: Optional[Principal] = None
    admin: Optional[AdminProfile] = None
    allowed_categories: List[str] = Field(default_factory=list)
    user_role: str = "user"
    is_super_admin: bool = False
    loading: bool = False
