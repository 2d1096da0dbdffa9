"""
Sign-in / sign-up flows against a mocked identity provider and the in-memory store.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from storefront.core.errors import IdentityError
from storefront.repositories.documents import SERVER_TIMESTAMP
from storefront.services.auth_methods import AuthMethods, PhoneConfirmation, guest_name, normalize_phone

from .factories import ADMIN_UID, admin_doc, make_identity, make_store, make_tokens, user_doc


def run(coro):
    return asyncio.run(coro)


@pytest.mark.parametrize("raw, expected", [
    ("98765 43210", "+919876543210"),
    ("(987) 654-3210", "+919876543210"),
    ("919876543210", "+919876543210"),
    ("+44 20 7946 0958", "+442079460958"),
    ("12345", "12345"),
    ("", ""),
    (None, None),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_guest_name():
    assert guest_name("+919876543210") == "Guest-3210"


class TestCheckUserExists:
    def test_falls_back_to_users_query(self):
        store = make_store(users={"u1": user_doc(phone="+919876543210")})
        methods = AuthMethods(store, make_identity())
        assert run(methods.check_user_exists("9876543210"))
        assert not run(methods.check_user_exists("9000000000"))

    def test_uses_callable_when_available(self):
        identity = make_identity()
        identity.callables_available = True
        identity.call_function.return_value = {"exists": True}
        methods = AuthMethods(make_store(), identity)

        assert run(methods.check_user_exists("9876543210"))
        identity.call_function.assert_awaited_once_with("checkUserExists", {"phone": "+919876543210"})

    def test_errors_propagate(self):
        identity = make_identity()
        identity.callables_available = True
        identity.call_function.side_effect = IdentityError("functions/unavailable", "down")
        with pytest.raises(IdentityError):
            run(AuthMethods(make_store(), identity).check_user_exists("9876543210"))


class TestPhoneSignUpAndSignIn:
    def test_sign_up_sends_otp_with_pending_name(self):
        identity = make_identity()
        result = run(AuthMethods(make_store(), identity).sign_up_with_phone("9876543210", "  Asha "))

        assert result.ok
        assert result.value == PhoneConfirmation(
            verification_id="session-info-1", phone="+919876543210", pending_name="Asha")
        identity.send_verification_code.assert_awaited_once_with("+919876543210", None)

    def test_sign_up_without_name_uses_guest_name(self):
        result = run(AuthMethods(make_store(), make_identity()).sign_up_with_phone("9876543210"))
        assert result.value.pending_name == "Guest-3210"

    def test_sign_up_refused_for_existing_phone(self):
        identity = make_identity()
        store = make_store(users={"u1": user_doc(phone="+919876543210")})
        result = run(AuthMethods(store, identity).sign_up_with_phone("9876543210", "Asha"))

        assert result.kind == "already-registered"
        identity.send_verification_code.assert_not_awaited()

    def test_sign_in_refused_for_unknown_phone(self):
        result = run(AuthMethods(make_store(), make_identity()).sign_in_with_phone("9876543210"))
        assert result.kind == "not-registered"

    def test_sign_in_sends_otp(self):
        store = make_store(users={"u1": user_doc(phone="+919876543210")})
        result = run(AuthMethods(store, make_identity()).sign_in_with_phone("9876543210", "captcha"))

        assert result.ok
        assert result.value.pending_name is None
        assert result.message == "OTP sent successfully."

    def test_provider_error_is_mapped(self):
        identity = make_identity()
        identity.send_verification_code.side_effect = IdentityError("auth/too-many-requests")
        result = run(AuthMethods(make_store(), identity).sign_up_with_phone("9876543210"))

        assert result.kind == "auth/too-many-requests"
        assert result.error == "Too many attempts. Please try again later."


class TestVerifyOtp:
    def test_no_confirmation(self):
        result = run(AuthMethods(make_store(), make_identity()).verify_otp(None, "123456"))
        assert result.kind == "no-confirmation"

    def test_sign_up_completion_writes_user_profile(self):
        store = make_store()
        identity = make_identity()
        identity.sign_in_with_phone_number.return_value = make_tokens("new-uid", email=None, phone_number="+919876543210")
        confirmation = PhoneConfirmation(verification_id="session-info-1", phone="+919876543210", pending_name="Asha")

        result = run(AuthMethods(store, identity).verify_otp(confirmation, "123456"))

        assert result.ok
        assert result.message == "Signup complete. Logged in."
        assert result.value.display_name == "Asha"
        identity.sign_in_with_phone_number.assert_awaited_once_with("session-info-1", "123456")
        identity.update_display_name.assert_called_once_with("new-uid", "Asha")
        _, collection, doc_id, fields = store.writes[-1]
        assert (collection, doc_id) == ("users", "new-uid")
        assert fields == {
            "name": "Asha",
            "email": "",
            "phone": "+919876543210",
            "joinDate": datetime.now().strftime("%d/%m/%Y"),
            "updatedAt": SERVER_TIMESTAMP,
        }

    def test_existing_display_name_wins(self):
        identity = make_identity()
        identity.sign_in_with_phone_number.return_value = make_tokens(display_name="Asha Rao")
        confirmation = PhoneConfirmation(verification_id="s", phone="+919876543210")

        result = run(AuthMethods(make_store(), identity).verify_otp(confirmation, "123456"))
        assert result.value.display_name == "Asha Rao"
        assert result.message == "Phone sign-in successful."

    def test_invalid_code(self):
        identity = make_identity()
        identity.sign_in_with_phone_number.side_effect = IdentityError("auth/invalid-verification-code")
        confirmation = PhoneConfirmation(verification_id="s", phone="+919876543210")

        result = run(AuthMethods(make_store(), identity).verify_otp(confirmation, "000000"))
        assert result.kind == "auth/invalid-verification-code"
        assert result.error == "Invalid OTP, please try again."


class TestEmailAndGoogle:
    def test_email_sign_in(self):
        result = run(AuthMethods(make_store(), make_identity()).sign_in_with_email("asha@example.com", "secret1"))
        assert result.ok
        assert result.value.tokens.user_id == "customer-uid"

    def test_email_sign_in_failure_uses_default_message(self):
        identity = make_identity()
        identity.sign_in_with_password.side_effect = IdentityError("auth/wrong-password")
        result = run(AuthMethods(make_store(), identity).sign_in_with_email("asha@example.com", "nope12"))

        assert result.kind == "auth/wrong-password"
        assert result.error == "Failed to sign in."

    def test_google_sign_in(self):
        result = run(AuthMethods(make_store(), make_identity()).sign_in_with_google("google-id-token"))
        assert result.ok
        assert result.value.display_name == "Asha Rao"


class TestAdminSignIn:
    def test_active_admin_allowed(self):
        identity = make_identity()
        identity.sign_in_with_password.return_value = make_tokens(ADMIN_UID, email="admin@example.com")
        result = run(AuthMethods(make_store(), identity).admin_sign_in("admin@example.com", "secret1"))

        assert result.ok
        identity.revoke_sessions.assert_not_called()

    def test_non_admin_refused_and_signed_out(self):
        identity = make_identity()
        result = run(AuthMethods(make_store(), identity).admin_sign_in("asha@example.com", "secret1"))

        assert result.kind == "not-admin"
        assert result.error == "This account is not authorized as an admin."
        identity.revoke_sessions.assert_called_once_with("customer-uid")

    def test_inactive_admin_refused(self):
        identity = make_identity()
        identity.sign_in_with_password.return_value = make_tokens(ADMIN_UID, email="admin@example.com")
        store = make_store(admins={ADMIN_UID: admin_doc(active=False)})
        result = run(AuthMethods(store, identity).admin_sign_in("admin@example.com", "secret1"))
        assert result.kind == "not-admin"

    def test_verification_failure_refuses(self):
        identity = make_identity()
        identity.sign_in_with_password.return_value = make_tokens(ADMIN_UID)
        store = make_store()
        store.fail_reads = RuntimeError("unavailable")
        result = run(AuthMethods(store, identity).admin_sign_in("admin@example.com", "secret1"))

        assert result.kind == "not-admin"
        assert result.error == "Failed to verify admin access."

    def test_wrong_password_is_not_an_admin_refusal(self):
        identity = make_identity()
        identity.sign_in_with_password.side_effect = IdentityError("auth/invalid-credential")
        result = run(AuthMethods(make_store(), identity).admin_sign_in("admin@example.com", "secret1"))
        assert result.kind == "auth/invalid-credential"


class TestLogout:
    def test_revokes_sessions(self):
        identity = make_identity()
        result = AuthMethods(make_store(), identity).logout("customer-uid")
        assert result.ok
        identity.revoke_sessions.assert_called_once_with("customer-uid")

    def test_failure_is_mapped(self):
        identity = make_identity()
        identity.revoke_sessions.side_effect = RuntimeError("network")
        result = AuthMethods(make_store(), identity).logout("customer-uid")
        assert result.kind == "auth/unknown"
        assert result.error == "Logout failed"
