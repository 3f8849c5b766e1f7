import base64
import json
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .config import GOOGLE_USERINFO_URL
from .database import get_db
from .models import Profile

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = {"google", "microsoft"}


@dataclass(frozen=True)
class AuthIdentity:
    """Identity resolved from the sign-in provider's token"""

    provider: str
    provider_id: str


def _decode_jwt_payload(token: str) -> dict:
    """Read the claims of a JWT without verifying it (the provider already did)"""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid token format: wrong number of parts")

    payload_b64 = parts[1]
    payload_padding = 4 - len(payload_b64) % 4
    payload_b64_padded = payload_b64 + ("=" * payload_padding if payload_padding != 4 else "")
    return json.loads(base64.urlsafe_b64decode(payload_b64_padded))


async def resolve_google_identity(token: str) -> Optional[str]:
    """Resolve a Google access token to its subject via the userinfo endpoint"""
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {token}"})
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Google userinfo request failed: {e}")
        return None

    if response.status_code != 200:
        logger.info(f"Google userinfo rejected token: HTTP {response.status_code}")
        return None
    return response.json().get("sub")


def resolve_microsoft_identity(token: str) -> Optional[str]:
    """Resolve a Microsoft ID token to its object id (or subject)"""
    try:
        claims = _decode_jwt_payload(token)
    except (ValueError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️ Could not read Microsoft token claims: {e}")
        return None
    if not isinstance(claims, dict):
        logger.warning("⚠️ Microsoft token claims are not an object")
        return None
    return claims.get("oid") or claims.get("sub")


async def get_auth_identity(
    authorization: Optional[str] = Header(None),
    x_auth_provider: Optional[str] = Header(None),
) -> AuthIdentity:
    """Resolve the bearer token + provider headers to an identity"""
    if not authorization or not x_auth_provider:
        raise HTTPException(status_code=401, detail="Unauthorized")

    provider = x_auth_provider.strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        logger.warning(f"⚠️ Unsupported auth provider: {provider}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.removeprefix("Bearer ").strip()
    if provider == "google":
        provider_id = await resolve_google_identity(token)
    else:
        provider_id = resolve_microsoft_identity(token)

    if not provider_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return AuthIdentity(provider=provider, provider_id=provider_id)


def get_profile_for_identity(db: Session, identity: AuthIdentity) -> Optional[Profile]:
    return (
        db.query(Profile)
        .filter(
            Profile.auth_provider == identity.provider,
            Profile.auth_provider_id == identity.provider_id,
        )
        .first()
    )


async def get_current_profile(
    identity: AuthIdentity = Depends(get_auth_identity),
    db: Session = Depends(get_db),
) -> Profile:
    """Get the current user's profile row"""
    profile = get_profile_for_identity(db, identity)
    if not profile:
        logger.info(f"No profile for {identity.provider} identity")
        raise HTTPException(status_code=401, detail="Unauthorized")
    return profile
