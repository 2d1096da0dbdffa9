"""
storefront/services/session.py - Session / authorization resolver.

Turns an identity-provider principal into the application session:

1. no principal (signed out) -> no user, no admin profile, no categories;
2. principal without a display name -> backfill it from `users/{uid}.name`
   (and a missing phone number from `users/{uid}.phone`), best-effort;
3. `admins/{uid}` decides the admin profile:
   - missing -> not an admin;
   - role `superadmin` -> categories are the union over *every* admin document;
   - any other role -> that document's own categories.

Any lookup failure resolves to "not an admin" (lowest privilege).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from storefront.repositories.documents import ADMINS, USERS, DocumentStore
from storefront.schemas.principal import AdminProfile, Principal, SessionOut
from storefront.utils.categories import normalize_categories, raw_categories

logger = logging.getLogger("storefront.session")

SUPERADMIN = "superadmin"


@dataclass(frozen=True)
class Session:
    """Resolved session passed explicitly to whatever needs authorization."""
    user: Optional[Principal] = None
    admin: Optional[AdminProfile] = None
    allowed_categories: List[str] = field(default_factory=list)
    loading: bool = False

    @property
    def is_super_admin(self) -> bool:
        return bool(self.admin and self.admin.role == SUPERADMIN)

    @property
    def user_role(self) -> str:
        return self.admin.role if self.admin else "user"

    def has_role(self, required_role: Optional[str] = None) -> bool:
        if not required_role or self.is_super_admin:
            return True
        return bool(self.admin and self.admin.role == str(required_role).lower())

    def can_manage_category(self, category) -> bool:
        if not (self.admin and self.admin.active):
            return False
        if self.is_super_admin:
            return True
        return str(category or "").lower() in self.admin.categories

    def to_out(self) -> SessionOut:
        return SessionOut(
            user=self.user,
            admin=self.admin,
            allowed_categories=list(self.allowed_categories),
            user_role=self.user_role,
            is_super_admin=self.is_super_admin,
            loading=self.loading,
        )


class SessionResolver:
    """Holds the session state for one signed-in client and recomputes it on principal changes."""

    def __init__(self, store: DocumentStore, identity=None):
        self._store = store
        self._identity = identity
        self.user: Optional[Principal] = None
        self.auth_user: Optional[Principal] = None
        self.admin: Optional[AdminProfile] = None
        self.allowed_categories: List[str] = []
        self.loading = True

    @property
    def session(self) -> Session:
        return Session(
            user=self.user,
            admin=self.admin,
            allowed_categories=list(self.allowed_categories),
            loading=self.loading,
        )

    def on_principal_changed(self, principal: Optional[Principal]) -> Session:
        try:
            self.auth_user = principal
            if principal and (principal.email or principal.phone_number):
                self._backfill_profile(principal)
                self.user = principal
                self.load_admin_profile(principal.uid)
            else:
                self.clear()
        finally:
            self.loading = False
        return self.session

    def refresh_admin_profile(self) -> Session:
        if self.auth_user:
            self.load_admin_profile(self.auth_user.uid)
        return self.session

    def clear(self) -> None:
        self.user = None
        self.admin = None
        self.allowed_categories = []

    def _backfill_profile(self, principal: Principal) -> None:
        if principal.display_name:
            return
        try:
            user_doc = self._store.get_document(USERS, principal.uid)
        except Exception:
            logger.exception("Failed fetching user doc for %s", principal.uid)
            return
        if user_doc is None:
            return

        display_name = user_doc.data.get("name") or None
        if not principal.phone_number and user_doc.data.get("phone"):
            principal.phone_number = user_doc.data["phone"]
        if display_name and self._identity is not None:
            try:
                self._identity.update_display_name(principal.uid, display_name)
            except Exception:
                logger.exception("updateProfile error for %s", principal.uid)
        if display_name:
            principal.display_name = display_name

    def load_admin_profile(self, uid: Optional[str]) -> Optional[AdminProfile]:
        if not uid:
            self.admin = None
            self.allowed_categories = []
            return None
        try:
            snap = self._store.get_document(ADMINS, uid)
            if snap is None:
                self.admin = None
                self.allowed_categories = []
                return None

            data = snap.data
            role = str(data.get("role") or "admin").strip().lower()
            if role == SUPERADMIN:
                merged = []
                for doc in self._store.list_documents(ADMINS):
                    merged.extend(raw_categories(doc.data))
                categories = normalize_categories(merged)
            else:
                categories = normalize_categories(raw_categories(data))

            self.admin = AdminProfile(
                active=bool(data.get("active")),
                role=role,
                categories=categories,
                email=data.get("email") or "",
            )
            self.allowed_categories = list(categories)
        except Exception:
            logger.exception("Failed to load admin doc for %s", uid)
            self.admin = None
            self.allowed_categories = []
        return self.admin


def is_active_admin(store: DocumentStore, uid: str, email: Optional[str] = "") -> bool:
    """
    Admin login gate: `admins/{uid}` with a truthy `active` flag, or (for admin
    documents created before uid keys) an active admin document with the same e-mail.
    """
    snap = store.get_document(ADMINS, uid)
    if snap is not None and snap.data.get("active"):
        return True
    if email:
        matches = store.query_where(ADMINS, [("email", "==", email), ("active", "==", True)])
        if matches:
            return True
    return False
