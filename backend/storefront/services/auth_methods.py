"""
storefront/services/auth_methods.py - Sign-in / sign-up flows.

Every flow returns a `Success` or `Failure` result; provider errors are mapped to
user-facing messages by `handle_auth_error`.

Phone flows are two-step: `sign_up_with_phone` / `sign_in_with_phone` send the
OTP and hand back a `PhoneConfirmation`, which the client returns together with
the code to `verify_otp`.
"""
import logging
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storefront.core.errors import handle_auth_error
from storefront.core.results import Failure, Result, Success
from storefront.integrations.identity import IdentityProvider, IdentityTokens
from storefront.repositories.documents import SERVER_TIMESTAMP, USERS, DocumentStore
from storefront.services.session import is_active_admin

logger = logging.getLogger("storefront.auth")

_PHONE_JUNK = re.compile(r"[\s().-]")
_TEN_DIGITS = re.compile(r"^\d{10}$")


class PhoneConfirmation(BaseModel):
    """Pending OTP request handed back to the client."""
    verification_id: str
    phone: str
    pending_name: Optional[str] = Field(None, description="Set when the OTP completes a sign-up")


class SignedIn(BaseModel):
    tokens: IdentityTokens
    display_name: Optional[str] = None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    '98765 43210' -> '+919876543210'; '919876543210' -> '+919876543210';
    numbers already in '+' form are only stripped of separators.
    """
    if not phone:
        return phone
    s = _PHONE_JUNK.sub("", str(phone).strip())
    if s.startswith("+"):
        return s
    if len(s) > 10 and s.startswith("91"):
        return "+" + s
    if _TEN_DIGITS.match(s):
        return "+91" + s
    return s


def guest_name(phone: Optional[str]) -> str:
    return f"Guest-{(phone or '')[-4:]}"


class AuthMethods:
    def __init__(self, store: DocumentStore, identity: IdentityProvider):
        self._store = store
        self._identity = identity

    async def check_user_exists(self, phone_number: str) -> bool:
        normalized = normalize_phone(phone_number)
        try:
            if self._identity.callables_available:
                res = await self._identity.call_function("checkUserExists", {"phone": normalized})
                return bool((res or {}).get("exists"))
            # fallback if callable unavailable
            return bool(self._store.query_documents(USERS, "phone", "==", normalized))
        except Exception:
            logger.exception("checkUserExists error")
            raise

    async def sign_up_with_phone(self, phone_number: str, name: str = "",
                                 recaptcha_token: Optional[str] = None) -> Result[PhoneConfirmation]:
        try:
            phone = normalize_phone(phone_number)
            if await self.check_user_exists(phone):
                return Failure("already-registered", "Phone already registered. Please sign in instead.")

            verification_id = await self._identity.send_verification_code(phone, recaptcha_token)
            return Success(
                PhoneConfirmation(
                    verification_id=verification_id,
                    phone=phone,
                    pending_name=(name or "").strip() or guest_name(phone),
                ),
                message="OTP sent for signup. Enter the code to complete registration.",
            )
        except Exception as error:
            logger.error("signUpWithPhone error: %s", error)
            return handle_auth_error(error, "Failed to send OTP for signup.")

    async def sign_in_with_phone(self, phone_number: str,
                                 recaptcha_token: Optional[str] = None) -> Result[PhoneConfirmation]:
        try:
            phone = normalize_phone(phone_number)
            if not await self.check_user_exists(phone):
                return Failure("not-registered", "No account found for this phone number. Please sign up.")

            verification_id = await self._identity.send_verification_code(phone, recaptcha_token)
            return Success(
                PhoneConfirmation(verification_id=verification_id, phone=phone),
                message="OTP sent successfully.",
            )
        except Exception as error:
            logger.error("signInWithPhone error: %s", error)
            return handle_auth_error(error, "Failed to send OTP.")

    async def verify_otp(self, confirmation: Optional[PhoneConfirmation], otp: str) -> Result[SignedIn]:
        if confirmation is None or not confirmation.verification_id:
            return Failure("no-confirmation", "No OTP request found. Please request a new code.")
        try:
            tokens = await self._identity.sign_in_with_phone_number(confirmation.verification_id, otp)
            phone = tokens.phone_number or confirmation.phone or ""
            default_name = (
                (tokens.display_name or "").strip()
                or (confirmation.pending_name or "").strip()
                or guest_name(phone)
            )
            try:
                self._identity.update_display_name(tokens.user_id, default_name)
            except Exception as e:
                logger.error("updateProfile error: %s", e)
            tokens.display_name = default_name

            self._store.set_document(USERS, tokens.user_id, {
                "name": default_name,
                "email": tokens.email or "",
                "phone": phone,
                "joinDate": datetime.now().strftime("%d/%m/%Y"),
                "updatedAt": SERVER_TIMESTAMP,
            }, merge=True)

            return Success(
                SignedIn(tokens=tokens, display_name=default_name),
                message="Signup complete. Logged in." if confirmation.pending_name else "Phone sign-in successful.",
            )
        except Exception as error:
            logger.error("verifyOTP error: %s", error)
            return handle_auth_error(error, "Invalid OTP, please try again.")

    async def sign_in_with_email(self, email: str, password: str) -> Result[SignedIn]:
        try:
            tokens = await self._identity.sign_in_with_password(email, password)
        except Exception as error:
            return handle_auth_error(error, "Failed to sign in.")
        return Success(SignedIn(tokens=tokens, display_name=tokens.display_name), message="Signed in.")

    async def sign_in_with_google(self, google_id_token: str, request_uri: str = "http://localhost") -> Result[SignedIn]:
        try:
            tokens = await self._identity.sign_in_with_google(google_id_token, request_uri)
        except Exception as error:
            return handle_auth_error(error, "Google sign-in failed.")
        return Success(SignedIn(tokens=tokens, display_name=tokens.display_name), message="Google sign-in successful.")

    async def admin_sign_in(self, email: str, password: str) -> Result[SignedIn]:
        result = await self.sign_in_with_email(email, password)
        if not result.ok:
            return result
        tokens = result.value.tokens
        try:
            ok = is_active_admin(self._store, tokens.user_id, tokens.email or email)
        except Exception:
            logger.exception("Admin verification failed for %s", tokens.user_id)
            ok = False
            message = "Failed to verify admin access."
        else:
            message = "This account is not authorized as an admin."
        if ok:
            return result
        try:
            self._identity.revoke_sessions(tokens.user_id)
        except Exception as e:
            logger.warning("Sign-out after refused admin login failed: %s", e)
        return Failure("not-admin", message)

    def logout(self, uid: str) -> Result[None]:
        try:
            self._identity.revoke_sessions(uid)
        except Exception as error:
            return handle_auth_error(error, "Logout failed")
        return Success(None, message="Logged out successfully")

