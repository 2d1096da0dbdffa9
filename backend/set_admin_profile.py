#!/usr/bin/env python3
"""
Creates or updates the `admins/{uid}` document of a Firebase Auth user.

Usage:
    python set_admin_profile.py <user_email> [--role admin|superadmin] [--category NAME ...] [--inactive]
"""
import argparse
import sys
from typing import List, Optional

from storefront.repositories.documents import ADMINS, SERVER_TIMESTAMP
from storefront.utils.categories import normalize_categories


def set_admin_profile(store, identity, email: str, role: str = "admin",
                      categories: Optional[List[str]] = None, active: bool = True) -> dict:
    """Merges the admin profile for `email`; returns the written fields (plus uid)."""
    user = identity.get_user_by_email(email)
    fields = {
        "email": user.email or email,
        "role": role.strip().lower(),
        "categories": normalize_categories(categories or []),
        "active": active,
        "updatedAt": SERVER_TIMESTAMP,
    }
    store.set_document(ADMINS, user.uid, fields, merge=True)
    return {"uid": user.uid, **fields}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Grant admin access to a Firebase user.")
    parser.add_argument("email")
    parser.add_argument("--role", default="admin", choices=["admin", "superadmin"])
    parser.add_argument("--category", action="append", default=[], help="Shop category (repeatable)")
    parser.add_argument("--inactive", action="store_true", help="Write the profile as inactive")
    args = parser.parse_args(argv)

    from firebase_admin import auth

    from storefront.core.security import get_document_store
    from storefront.integrations.identity import get_identity_provider

    print(f"Setting admin profile for: {args.email}")
    try:
        written = set_admin_profile(
            get_document_store(),
            get_identity_provider(),
            args.email,
            role=args.role,
            categories=args.category,
            active=not args.inactive,
        )
    except auth.UserNotFoundError:
        print(f"❌ User not found: {args.email}")
        return 1
    except Exception as e:
        print(f"❌ Error setting admin profile: {e}")
        return 1

    print(f"✅ admins/{written['uid']}: role={written['role']} categories={written['categories']} active={written['active']}")
    print("The user must sign in again (or refresh the session) for the change to take effect.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
