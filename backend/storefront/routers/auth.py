"""
# storefront/routers/auth.py — Authentication endpoints

Firebase Authentication does the actual sign-in; these endpoints proxy the
client flows and keep `users/{uid}` / `admins/{uid}` in step.

| Endpoint                 | Purpose |
|--------------------------|---------|
| POST /auth/login         | e-mail + password sign-in |
| POST /auth/admin/login   | e-mail + password, refused unless an active admin |
| POST /auth/phone/signup  | send OTP for a new phone account |
| POST /auth/phone/signin  | send OTP for an existing phone account |
| POST /auth/phone/verify  | confirm the OTP, create/merge the user profile |
| POST /auth/google        | sign in with a Google ID token |
| POST /auth/logout        | revoke refresh tokens, drop the admin board |
| GET  /auth/session       | resolved session (role, categories) |
| POST /auth/session/refresh | re-read the admin profile |
"""
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, status
from pydantic import EmailStr

from storefront.core.auth import get_principal
from storefront.core.results import Failure
from storefront.core.security import (
    get_auth_methods,
    get_board_registry,
    get_document_store,
    get_session,
    resolve_session,
)
from storefront.integrations.identity import IdentityProvider, get_identity_provider
from storefront.repositories.documents import DocumentStore
from storefront.schemas.auth import LoginResponse, MessageResponse, OtpSentResponse
from storefront.schemas.principal import Principal, SessionOut
from storefront.services.auth_methods import AuthMethods, PhoneConfirmation
from storefront.services.booking_board import BoardRegistry
from storefront.services.session import Session

router = APIRouter(prefix="/auth", tags=["Auth"])

_FAILURE_STATUS = {
    "already-registered": status.HTTP_409_CONFLICT,
    "not-registered": status.HTTP_404_NOT_FOUND,
    "not-admin": status.HTTP_403_FORBIDDEN,
    "auth/user-disabled": status.HTTP_403_FORBIDDEN,
    "auth/too-many-requests": status.HTTP_429_TOO_MANY_REQUESTS,
    "no-confirmation": status.HTTP_400_BAD_REQUEST,
}


def _raise_for(failure: Failure, default_status: int) -> None:
    raise HTTPException(status_code=_FAILURE_STATUS.get(failure.kind, default_status), detail=failure.error)


def _login_response(result) -> LoginResponse:
    tokens = result.value.tokens
    return LoginResponse(
        id_token=tokens.id_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        user_id=tokens.user_id,
        display_name=result.value.display_name,
        message=result.message,
    )


@router.post("/login", response_model=LoginResponse, summary="E-mail + password sign-in")
async def login(
    email: EmailStr = Form(..., description="E-mail"),
    password: str = Form(..., min_length=6, description="Password (≥6 chars)"),
    methods: AuthMethods = Depends(get_auth_methods),
):
    result = await methods.sign_in_with_email(email, password)
    if not result.ok:
        _raise_for(result, status.HTTP_401_UNAUTHORIZED)
    return _login_response(result)


@router.post("/admin/login", response_model=LoginResponse, summary="Admin sign-in")
async def admin_login(
    email: EmailStr = Form(...),
    password: str = Form(..., min_length=6),
    methods: AuthMethods = Depends(get_auth_methods),
):
    """Signs in, then refuses (and signs out) accounts without an active admin document."""
    result = await methods.admin_sign_in(email, password)
    if not result.ok:
        _raise_for(result, status.HTTP_401_UNAUTHORIZED)
    return _login_response(result)


@router.post("/phone/signup", response_model=OtpSentResponse)
async def phone_signup(
    phone: str = Form(..., description="Phone number, +91 assumed for 10 digits"),
    name: str = Form("", description="Display name for the new account"),
    recaptcha_token: Optional[str] = Form(None),
    methods: AuthMethods = Depends(get_auth_methods),
):
    result = await methods.sign_up_with_phone(phone, name, recaptcha_token)
    if not result.ok:
        _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return OtpSentResponse(message=result.message, confirmation=result.value)


@router.post("/phone/signin", response_model=OtpSentResponse)
async def phone_signin(
    phone: str = Form(...),
    recaptcha_token: Optional[str] = Form(None),
    methods: AuthMethods = Depends(get_auth_methods),
):
    result = await methods.sign_in_with_phone(phone, recaptcha_token)
    if not result.ok:
        _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return OtpSentResponse(message=result.message, confirmation=result.value)


@router.post("/phone/verify", response_model=LoginResponse)
async def phone_verify(
    otp: str = Form(..., min_length=4, max_length=8),
    verification_id: str = Form(""),
    phone: str = Form(""),
    pending_name: Optional[str] = Form(None),
    methods: AuthMethods = Depends(get_auth_methods),
):
    confirmation = PhoneConfirmation(verification_id=verification_id, phone=phone, pending_name=pending_name) \
        if verification_id else None
    result = await methods.verify_otp(confirmation, otp)
    if not result.ok:
        _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return _login_response(result)


@router.post("/google", response_model=LoginResponse)
async def google_signin(
    id_token: str = Form(..., description="Google ID token from the client"),
    request_uri: str = Form("http://localhost"),
    methods: AuthMethods = Depends(get_auth_methods),
):
    result = await methods.sign_in_with_google(id_token, request_uri)
    if not result.ok:
        _raise_for(result, status.HTTP_401_UNAUTHORIZED)
    return _login_response(result)


@router.post("/logout", response_model=MessageResponse, summary="Revoke refresh tokens server-side")
def logout(
    principal: Principal = Depends(get_principal),
    methods: AuthMethods = Depends(get_auth_methods),
    boards: BoardRegistry = Depends(get_board_registry),
):
    """
    Revokes the refresh tokens on every device and closes the caller's booking board.
    The client must also call signOut() in the Firebase SDK.
    """
    boards.close(principal.uid)
    result = methods.logout(principal.uid)
    if not result.ok:
        _raise_for(result, status.HTTP_502_BAD_GATEWAY)
    return MessageResponse(detail=result.message)


@router.get("/session", response_model=SessionOut)
def read_session(session: Session = Depends(get_session)):
    return session.to_out()


@router.post("/session/refresh", response_model=SessionOut)
def refresh_session(
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
    boards: BoardRegistry = Depends(get_board_registry),
):
    """Re-reads `admins/{uid}` and re-binds the caller's open booking board to it."""
    session = resolve_session(principal, store, identity)
    boards.rebind(principal.uid, session.admin)
    return session.to_out()
