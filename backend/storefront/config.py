"""
storefront/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and lazily initializes the Firebase Admin SDK (Firestore) using the provided credentials.
All other modules import `settings` and call `get_db()` for the Firestore client.
"""
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""
    firebase_cred_file: str = 'firebase_service_account.json'
    firebase_project_id: str = ''

    # Firebase credentials from environment variables (for Cloud Run)
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: Optional[str] = None
    firebase_token_uri: Optional[str] = None
    firebase_auth_provider_x509_cert_url: Optional[str] = None
    firebase_client_x509_cert_url: Optional[str] = None

    # Identity Toolkit REST (client-style sign-in flows)
    firebase_web_api_key: str = ''
    identity_timeout_seconds: float = 10.0

    # HTTPS callable functions (checkUserExists)
    functions_region: str = 'asia-south1'
    functions_base_url: str = ''

    # Refund gateway
    api_base_url: str = Field(
        '',
        validation_alias=AliasChoices('API_BASE_URL', 'EXPO_PUBLIC_API_BASE_URL', 'api_base_url'),
    )
    refund_timeout_seconds: float = 15.0

    # Admin booking board
    status_message_ttl_seconds: float = 3.0
    status_error_ttl_seconds: float = 4.0

    debug: bool = False
    log_level: str = 'INFO'
    allowed_origins: str = '*'  # Comma-separated list or '*' for all

    @property
    def callable_base_url(self) -> str:
        """Base URL of the HTTPS callables; empty when it cannot be derived."""
        if self.functions_base_url:
            return self.functions_base_url.rstrip('/')
        if not self.firebase_project_id or not self.functions_region:
            return ''
        return f"https://{self.functions_region}-{self.firebase_project_id}.cloudfunctions.net"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Load settings from environment (.env file, etc.)
settings = Settings()


def _service_account_credentials() -> credentials.Certificate:
    # Check if we have environment variables for Firebase credentials (Cloud Run)
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url,
    ]):
        cred_dict = {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url,
        }
        return credentials.Certificate(cred_dict)
    # Use service account file (local development)
    return credentials.Certificate(settings.firebase_cred_file)


@lru_cache(maxsize=1)
def get_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        # No default app yet
        pass
    options = {'projectId': settings.firebase_project_id} if settings.firebase_project_id else None
    return firebase_admin.initialize_app(_service_account_credentials(), options)


@lru_cache(maxsize=1)
def get_db():
    """Firestore database client bound to the default Firebase app."""
    return firestore.client(get_firebase_app())
