"""
Xero OAuth connect flow
Builds the authorization URL and completes the redirect callback
"""

import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ....config import APP_URL, XERO_AUTHORIZE_URL, XERO_CONNECTIONS_URL, XERO_REDIRECT_URI, XERO_SCOPES
from ....models import Profile
from ....security_utils import generate_oauth_state, verify_oauth_state
from .exceptions import NotConnected, PersistenceError, RemoteApiError
from .repository import XeroTokenRepository
from .schemas import XeroTenantConnection
from .token_service import exchange_code, utcnow

logger = logging.getLogger(__name__)

SETTINGS_PATH = "/settings/xero"


def settings_redirect_url(error: Optional[str] = None) -> str:
    """Frontend settings page carrying the outcome of the connect flow"""
    query = urlencode({"error": error}) if error else "success=true"
    return f"{APP_URL}{SETTINGS_PATH}?{query}"


def build_authorize_url(client_id: str, state: str, scope: Optional[str] = None) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": XERO_REDIRECT_URI,
        "scope": scope or XERO_SCOPES,
        "state": state,
    }
    return f"{XERO_AUTHORIZE_URL}?{urlencode(params)}"


def create_connect_request(db: Session, profile: Profile) -> dict:
    """Signed state plus the Xero authorization URL for the user's app credentials"""
    token = XeroTokenRepository.get_token(db, profile.id)
    if not token or not token.client_id or not token.client_secret:
        raise NotConnected("Xero credentials not configured. Please add your Xero app in settings.")

    state = generate_oauth_state(
        {
            "userId": profile.id,
            "provider": profile.auth_provider,
            "providerId": profile.auth_provider_id,
        }
    )
    logger.info(f"Xero OAuth initiated for user {profile.id}")
    return {"auth_url": build_authorize_url(token.client_id, state, token.scope), "state": state}


async def get_tenant_connections(http: httpx.AsyncClient, access_token: str) -> list[XeroTenantConnection]:
    """Organisations the new token is authorised for; empty on any failure"""
    try:
        response = await http.get(
            XERO_CONNECTIONS_URL,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        if not response.is_success:
            logger.warning(f"⚠️ Xero connections lookup returned HTTP {response.status_code}")
            return []
        payload = response.json()
        if not isinstance(payload, list):
            logger.warning("⚠️ Unexpected Xero connections payload")
            return []
        return [XeroTenantConnection.model_validate(entry) for entry in payload]
    except (httpx.HTTPError, ValueError, ValidationError) as e:
        logger.warning(f"⚠️ Failed to fetch Xero connections: {e}")
        return []


def _profile_for_state(db: Session, state: str) -> Optional[Profile]:
    data = verify_oauth_state(state)
    if not data or not data.get("userId"):
        return None

    profile = db.query(Profile).filter(Profile.id == data["userId"]).first()
    if not profile:
        return None
    if profile.auth_provider != data.get("provider") or profile.auth_provider_id != data.get("providerId"):
        logger.warning(f"⚠️ OAuth state identity does not match profile {profile.id}")
        return None
    return profile


async def _complete_callback(
    db: Session, http: httpx.AsyncClient, code: Optional[str], state: Optional[str]
) -> Optional[str]:
    """Run the callback state machine; returns an error reason or None on success"""
    if not code or not state:
        return "missing_params"

    profile = _profile_for_state(db, state)
    if not profile:
        return "invalid_state"

    token = XeroTokenRepository.get_token(db, profile.id)
    if not token or not token.client_id or not token.client_secret:
        return "token_not_found"

    try:
        token_data = await exchange_code(http, token.client_id, token.client_secret, code)
    except RemoteApiError as e:
        logger.error(f"❌ Xero token exchange failed for user {profile.id}: {e}")
        return "token_exchange_failed"

    connections = await get_tenant_connections(http, token_data.access_token)
    tenant = connections[0] if connections else None
    if not tenant:
        logger.warning(f"⚠️ No Xero organisation resolved for user {profile.id}")

    try:
        XeroTokenRepository.update_token(
            db,
            token,
            access_token=token_data.access_token,
            refresh_token=token_data.refresh_token,
            expires_at=utcnow() + timedelta(seconds=token_data.expires_in),
            scope=token_data.scope,
            tenant_id=tenant.tenant_id if tenant else None,
            tenant_name=tenant.tenant_name if tenant else None,
            tenant_type=tenant.tenant_type if tenant else None,
        )
    except PersistenceError:
        return "update_failed"

    logger.info(f"✅ Xero connected for user {profile.id} ({tenant.tenant_name if tenant else 'no organisation'})")
    return None


async def handle_oauth_callback(
    db: Session,
    http: httpx.AsyncClient,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str] = None,
) -> str:
    """Complete the Xero redirect and return the settings URL to send the user to"""
    if error:
        logger.error(f"❌ Xero OAuth error: {error}")
        return settings_redirect_url(error)

    try:
        reason = await _complete_callback(db, http, code, state)
    except Exception as e:
        logger.exception(f"❌ Xero callback error: {e}")
        db.rollback()
        reason = "unknown"
    return settings_redirect_url(reason)
