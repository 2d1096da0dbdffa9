"""
storefront/schemas/auth.py — Auth request/response schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field

from storefront.services.auth_methods import PhoneConfirmation


class LoginResponse(BaseModel):
    """Token bundle returned after a successful sign-in."""
    id_token:      str
    refresh_token: str
    expires_in:    int         # seconds
    user_id:       str
    display_name:  Optional[str] = None
    message:       str = ""


class OtpSentResponse(BaseModel):
    message: str
    confirmation: PhoneConfirmation = Field(..., description="Send back to /auth/phone/verify with the code")


class MessageResponse(BaseModel):
    detail: str
