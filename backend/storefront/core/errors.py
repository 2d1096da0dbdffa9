"""
storefront/core/errors.py - Error types and the centralized auth error mapper.
"""
import logging
from typing import Optional

from google.api_core.exceptions import PermissionDenied

from storefront.core.results import Failure

logger = logging.getLogger("storefront.auth")

AUTH_ERROR_MESSAGES = {
    "auth/invalid-verification-code": "Invalid OTP, please try again.",
    "auth/invalid-verification-id": "Invalid verification, please retry.",
    "auth/too-many-requests": "Too many attempts. Please try again later.",
    "auth/operation-not-allowed": "Phone sign-in not enabled.",
    "auth/user-disabled": "This account has been disabled.",
    "auth/code-expired": "OTP expired. Please request a new one.",
    "permission-denied": "Permission denied when accessing Firestore.",
}

# Identity Toolkit REST error messages -> client SDK error codes
REST_ERROR_CODES = {
    "INVALID_CODE": "auth/invalid-verification-code",
    "MISSING_CODE": "auth/invalid-verification-code",
    "INVALID_SESSION_INFO": "auth/invalid-verification-id",
    "MISSING_SESSION_INFO": "auth/invalid-verification-id",
    "SESSION_EXPIRED": "auth/code-expired",
    "CODE_EXPIRED": "auth/code-expired",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "QUOTA_EXCEEDED": "auth/too-many-requests",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "USER_DISABLED": "auth/user-disabled",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
    "INVALID_PHONE_NUMBER": "auth/invalid-phone-number",
    "CAPTCHA_CHECK_FAILED": "auth/captcha-check-failed",
    "PERMISSION_DENIED": "permission-denied",
}


class IdentityError(Exception):
    """A failed identity provider call, carrying the provider error code."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or code

    @classmethod
    def from_rest_message(cls, raw: str) -> "IdentityError":
        """
        Build from an Identity Toolkit error message such as
        "TOO_MANY_ATTEMPTS_TRY_LATER : Access blocked ...".
        """
        key = (raw or "").split(":", 1)[0].strip()
        return cls(REST_ERROR_CODES.get(key, key.lower() or "auth/internal-error"), raw or key)


class BoardError(ValueError):
    """Rejected booking board request (bad status, unknown or locked booking)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def handle_auth_error(error: Exception, default_message: Optional[str] = None) -> Failure:
    """Log the error and map its provider code to a user-facing failure."""
    logger.error("Auth Error: %s", error)
    if isinstance(error, PermissionDenied):
        code = "permission-denied"
    else:
        code = getattr(error, "code", None)
        if not isinstance(code, str):
            code = None
    return Failure(
        kind=code or "auth/unknown",
        error=AUTH_ERROR_MESSAGES.get(code) or default_message or "Authentication failed.",
    )
