# storefront/core/auth.py
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from storefront.integrations.identity import IdentityProvider, get_identity_provider
from storefront.schemas.principal import Principal


def _extract_bearer_token(request: Request) -> Optional[str]:
    """
    Reads the token from `Authorization: Bearer <id_token>`.
    Returns None when the header is missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_id_token(identity: IdentityProvider, id_token: str) -> dict:
    """
    Firebase ID token verification (revocation checked, so signed-out
    sessions are refused). Invalid/revoked/expired tokens give 401.
    """
    try:
        return identity.verify_id_token(id_token)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Firebase ID token: {exc}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _token_to_principal(decoded: dict) -> Principal:
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid:
        raise HTTPException(status_code=401, detail="Token missing uid.")

    return Principal(
        uid=uid,
        email=decoded.get("email"),
        phone_number=decoded.get("phone_number"),
        display_name=decoded.get("name"),
    )


# --------- FastAPI Dependencies --------- #

async def get_optional_principal(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Principal]:
    """
    Token optional: verified and turned into a Principal when present, else None.
    """
    token = _extract_bearer_token(request)
    if not token:
        return None
    return _token_to_principal(_decode_id_token(identity, token))


async def get_principal(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Token required: verified and turned into a Principal.
    """
    token = _extract_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_to_principal(_decode_id_token(identity, token))
