"""
# `storefront/core/security.py` — Session & admin dependencies

Wires the services into FastAPI:

- `get_document_store` / `get_board_registry` / `get_auth_methods`: process-wide
  service instances (overridden in tests through `app.dependency_overrides`).
- `get_session`: verified principal -> `SessionResolver` -> `Session`.
- `get_current_admin`: the session, only if it carries an *active* admin profile.

Authorization failures:

| Case                                  | Status |
|---------------------------------------|--------|
| no / invalid bearer token             | 401    |
| no admin document, inactive admin     | 403    |
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status

from storefront.config import get_db, settings
from storefront.core.auth import get_optional_principal, get_principal
from storefront.integrations.identity import IdentityProvider, get_identity_provider
from storefront.integrations.refunds import get_refund_gateway
from storefront.repositories.documents import DocumentStore
from storefront.schemas.principal import Principal
from storefront.services.auth_methods import AuthMethods
from storefront.services.booking_board import BoardRegistry
from storefront.services.session import Session, SessionResolver


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    return DocumentStore(get_db())


@lru_cache(maxsize=1)
def get_board_registry() -> BoardRegistry:
    return BoardRegistry(
        get_document_store,
        get_refund_gateway,
        success_ttl=settings.status_message_ttl_seconds,
        error_ttl=settings.status_error_ttl_seconds,
    )


def get_auth_methods(
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AuthMethods:
    return AuthMethods(store, identity)


def resolve_session(
    principal: Optional[Principal],
    store: DocumentStore,
    identity: IdentityProvider,
) -> Session:
    return SessionResolver(store, identity).on_principal_changed(principal)


def get_session(
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Session:
    """Session for the caller; signed-out callers get the empty session."""
    return resolve_session(principal, store, identity)


def get_signed_in_session(
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Session:
    session = resolve_session(principal, store, identity)
    if session.user is None:
        # Principals without e-mail or phone (e.g. anonymous) are not app users
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Signed-in account has no e-mail or phone number.",
        )
    return session


def get_current_admin(session: Session = Depends(get_signed_in_session)) -> Session:
    """
    Dependency to allow access only to active admins (any role).
    """
    if session.admin is None or not session.admin.active or not session.has_role("admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return session
