"""
Error mapping and category helpers.
"""

from __future__ import annotations

from google.api_core.exceptions import PermissionDenied

from storefront.core.errors import AUTH_ERROR_MESSAGES, IdentityError, handle_auth_error
from storefront.utils.categories import normalize, normalize_categories, raw_categories


class TestHandleAuthError:
    def test_known_code_gets_fixed_message(self):
        failure = handle_auth_error(IdentityError("auth/code-expired"), "Invalid OTP, please try again.")
        assert failure.kind == "auth/code-expired"
        assert failure.error == "OTP expired. Please request a new one."

    def test_every_known_code_is_mapped(self):
        for code, message in AUTH_ERROR_MESSAGES.items():
            assert handle_auth_error(IdentityError(code)).error == message

    def test_unknown_code_uses_default_message(self):
        failure = handle_auth_error(IdentityError("auth/wrong-password"), "Failed to sign in.")
        assert failure.kind == "auth/wrong-password"
        assert failure.error == "Failed to sign in."

    def test_firestore_permission_denied(self):
        failure = handle_auth_error(PermissionDenied("Missing or insufficient permissions."))
        assert failure.kind == "permission-denied"
        assert failure.error == "Permission denied when accessing Firestore."

    def test_plain_exception(self):
        failure = handle_auth_error(RuntimeError("boom"))
        assert failure.kind == "auth/unknown"
        assert failure.error == "Authentication failed."
        assert not failure.ok


class TestIdentityErrorFromRest:
    def test_detail_after_colon_is_ignored(self):
        err = IdentityError.from_rest_message("INVALID_CODE : The SMS code is invalid")
        assert err.code == "auth/invalid-verification-code"
        assert "SMS code" in err.message

    def test_empty_message(self):
        assert IdentityError.from_rest_message("").code == "auth/internal-error"


class TestCategories:
    def test_normalize(self):
        assert normalize("  Downtown ") == "downtown"
        assert normalize(None) == ""

    def test_raw_categories(self):
        assert raw_categories({"categories": ["A"], "category": "B"}) == ["A"]
        assert raw_categories({"category": "B"}) == ["B"]
        assert raw_categories({"categories": "A"}) == []
        assert raw_categories({}) == []
        assert raw_categories(None) == []

    def test_normalize_categories_keeps_first_seen_order(self):
        assert normalize_categories(["Uptown", " downtown", "UPTOWN", "", None]) == ["uptown", "downtown"]
