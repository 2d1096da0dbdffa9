"""
storefront/integrations/identity.py - Firebase Authentication integration.

Server-side operations go through the Admin SDK (`firebase_admin.auth`); the
client-style sign-in flows (password, phone OTP, Google) go through the
Identity Toolkit REST API with the project's web API key.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from firebase_admin import auth as firebase_auth
from pydantic import BaseModel

from storefront.config import get_firebase_app, settings
from storefront.core.errors import IdentityError

logger = logging.getLogger("storefront.identity")

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts"


class IdentityTokens(BaseModel):
    """Token bundle returned by a successful sign-in."""
    id_token: str
    refresh_token: str = ""
    expires_in: int = 3600
    user_id: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    display_name: Optional[str] = None
    is_new_user: bool = False


def _tokens_from_payload(data: Dict[str, Any]) -> IdentityTokens:
    return IdentityTokens(
        id_token=data.get("idToken", ""),
        refresh_token=data.get("refreshToken", ""),
        expires_in=int(data.get("expiresIn") or 3600),
        user_id=data.get("localId", ""),
        email=data.get("email") or None,
        phone_number=data.get("phoneNumber") or None,
        display_name=data.get("displayName") or None,
        is_new_user=bool(data.get("isNewUser")),
    )


class IdentityProvider:
    """
    Wrapper around Firebase Authentication.
    `transport` lets tests substitute an `httpx.MockTransport` for the REST calls.
    """

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = api_key if api_key is not None else settings.firebase_web_api_key
        self._transport = transport

    # --------- Admin SDK --------- #

    def verify_id_token(self, id_token: str) -> dict:
        return firebase_auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)

    def update_display_name(self, uid: str, display_name: str) -> None:
        firebase_auth.update_user(uid, display_name=display_name, app=get_firebase_app())

    def revoke_sessions(self, uid: str) -> None:
        firebase_auth.revoke_refresh_tokens(uid, app=get_firebase_app())

    def get_user_by_email(self, email: str):
        return firebase_auth.get_user_by_email(email, app=get_firebase_app())

    # --------- Identity Toolkit REST --------- #

    async def _post(self, url: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=settings.identity_timeout_seconds, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Identity request failed: %s", exc)
            raise IdentityError("auth/network-request-failed", str(exc)) from exc
        try:
            data = resp.json()
        except ValueError:
            raise IdentityError("auth/internal-error", f"Unexpected response ({resp.status_code})") from None
        if resp.status_code != 200 or not isinstance(data, dict):
            message = ((data or {}).get("error") or {}).get("message", "") if isinstance(data, dict) else ""
            raise IdentityError.from_rest_message(message or f"HTTP_{resp.status_code}")
        return data

    async def _accounts(self, method: str, payload: dict) -> dict:
        if not self._api_key:
            raise IdentityError("auth/invalid-api-key", "FIREBASE_WEB_API_KEY is not configured")
        return await self._post(f"{IDENTITY_TOOLKIT_URL}:{method}?key={self._api_key}", payload)

    async def sign_in_with_password(self, email: str, password: str) -> IdentityTokens:
        data = await self._accounts("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        return _tokens_from_payload(data)

    async def send_verification_code(self, phone_number: str, recaptcha_token: Optional[str] = None) -> str:
        """Starts phone sign-in and returns the verification id (sessionInfo)."""
        payload = {"phoneNumber": phone_number}
        if recaptcha_token:
            payload["recaptchaToken"] = recaptcha_token
        data = await self._accounts("sendVerificationCode", payload)
        session_info = data.get("sessionInfo")
        if not session_info:
            raise IdentityError("auth/invalid-verification-id", "Missing sessionInfo")
        return session_info

    async def sign_in_with_phone_number(self, verification_id: str, code: str) -> IdentityTokens:
        data = await self._accounts("signInWithPhoneNumber", {
            "sessionInfo": verification_id,
            "code": code,
        })
        return _tokens_from_payload(data)

    async def sign_in_with_google(self, google_id_token: str, request_uri: str = "http://localhost") -> IdentityTokens:
        data = await self._accounts("signInWithIdp", {
            "postBody": urlencode({"id_token": google_id_token, "providerId": "google.com"}),
            "requestUri": request_uri,
            "returnSecureToken": True,
            "returnIdpCredential": True,
        })
        return _tokens_from_payload(data)

    # --------- HTTPS callables --------- #

    @property
    def callables_available(self) -> bool:
        return bool(settings.callable_base_url)

    async def call_function(self, name: str, data: dict) -> Any:
        if not self.callables_available:
            raise IdentityError("functions/unavailable", "Callable functions are not configured")
        try:
            async with httpx.AsyncClient(timeout=settings.identity_timeout_seconds, transport=self._transport) as client:
                resp = await client.post(f"{settings.callable_base_url}/{name}", json={"data": data})
            body = resp.json()
        except httpx.HTTPError as exc:
            raise IdentityError("functions/unavailable", str(exc)) from exc
        except ValueError:
            raise IdentityError("functions/internal", "Invalid callable response") from None
        if not isinstance(body, dict) or "error" in body or resp.status_code != 200:
            err = body.get("error") if isinstance(body, dict) else None
            status = (err or {}).get("status", "INTERNAL") if isinstance(err, dict) else "INTERNAL"
            raise IdentityError(f"functions/{status.lower().replace('_', '-')}", str(err or resp.status_code))
        return body.get("result")


_identity_provider = IdentityProvider()


def get_identity_provider() -> IdentityProvider:
    return _identity_provider
