"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files — pytest discovers this by convention.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.core.security import get_board_registry, get_document_store
from storefront.integrations.identity import get_identity_provider
from storefront.routers import admin_bookings, auth
from storefront.services.booking_board import BoardRegistry

from .factories import booking_doc, make_gateway, make_identity, make_store

# ---------------------------------------------------------------------------
# App builder — used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(store, identity=None, gateway=None) -> FastAPI:
    """
    Fresh FastAPI app with the Firestore store, the identity provider and the
    board registry overridden, so no Firebase call leaves the process.

    The registry is exposed as `app.state.boards` for assertions.
    """
    app = FastAPI(redirect_slashes=False)
    app.include_router(auth.router)
    app.include_router(admin_bookings.admin_router, prefix="/admin")

    identity = identity if identity is not None else make_identity()
    gateway = gateway if gateway is not None else make_gateway()
    boards = BoardRegistry(lambda: store, lambda: gateway)

    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_board_registry] = lambda: boards
    app.state.boards = boards
    app.state.identity = identity
    app.state.gateway = gateway
    return app


# ---------------------------------------------------------------------------
# Reusable fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store():
    """Two Downtown bookings, one Uptown booking; one scoped admin and one superadmin."""
    return make_store(bookings={
        "b-downtown-new": booking_doc(customerName="Asha Rao", createdAt={"seconds": 300}),
        "b-downtown-old": booking_doc(customerName="Vikram", customerEmail="vik@example.com",
                                      status="Cancelled", createdAt={"seconds": 100}),
        "b-uptown": booking_doc(shop="Uptown", customerName="Meera", customerEmail="meera@example.com",
                                createdAt={"seconds": 200}),
    })


@pytest.fixture()
def client_factory(store):
    def _make(identity=None, gateway=None, store_=None) -> TestClient:
        app = build_app(store_ if store_ is not None else store, identity=identity, gateway=gateway)
        return TestClient(app, raise_server_exceptions=True)

    return _make


@pytest.fixture()
def client(client_factory):
    return client_factory()
