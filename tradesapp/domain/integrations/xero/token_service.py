"""
Xero token lifecycle
Keeps a valid access token for the current request, refreshing through the
OAuth refresh-token grant when the cached token is close to expiry
"""

import base64
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

import httpx
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ....config import XERO_REDIRECT_URI, XERO_REVOKE_URL, XERO_TOKEN_REFRESH_BUFFER_SECONDS, XERO_TOKEN_URL
from ....models_xero import XeroToken
from .exceptions import NotConnected, RefreshFailed, RemoteApiError
from .repository import XeroTokenRepository
from .schemas import XeroTokenResponse

if TYPE_CHECKING:
    from .client import XeroRequestContext

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how expiry is stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class TokenState:
    """Snapshot of the token row used for the lifetime of one request"""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    tenant_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: XeroToken) -> "TokenState":
        return cls(
            client_id=row.client_id,
            client_secret=row.client_secret,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=row.expires_at,
            tenant_id=row.tenant_id,
        )

    def is_fresh(self, now: datetime, buffer_seconds: int = XERO_TOKEN_REFRESH_BUFFER_SECONDS) -> bool:
        """True while the access token stays valid beyond the buffer window"""
        if not self.expires_at:
            return False
        return self.expires_at - now > timedelta(seconds=buffer_seconds)


def get_basic_auth_header(client_id: str, client_secret: str) -> str:
    """Generate Basic Auth header value for the Xero identity endpoints"""
    credentials = f"{client_id}:{client_secret}"
    return base64.b64encode(credentials.encode()).decode()


def _token_endpoint_headers(client_id: str, client_secret: str) -> dict:
    return {
        "Accept": "application/json",
        "Content-Type": "application/x-www-form-urlencoded",
        "Authorization": f"Basic {get_basic_auth_header(client_id, client_secret)}",
    }


async def ensure_valid_access_token(db: Session, ctx: "XeroRequestContext") -> str:
    """
    Return an access token valid for at least the buffer window.

    The cached token is returned without any network call while it is fresh.
    Otherwise the refresh grant is performed once, the new tokens are
    committed, and only then is ``ctx.token`` replaced.
    """
    token = ctx.token
    if token is None or not token.access_token or not token.refresh_token:
        raise NotConnected()

    now = utcnow()
    if token.is_fresh(now):
        return token.access_token

    if not token.client_id or not token.client_secret:
        raise NotConnected("Xero credentials missing. Please connect Xero in settings.")

    logger.info(f"🔄 Refreshing Xero token for user {ctx.user_id}")
    try:
        response = await ctx.http.post(
            XERO_TOKEN_URL,
            headers=_token_endpoint_headers(token.client_id, token.client_secret),
            data={"grant_type": "refresh_token", "refresh_token": token.refresh_token},
        )
    except httpx.HTTPError as e:
        logger.error(f"❌ Xero token refresh request failed: {e}")
        raise RefreshFailed() from e

    if not response.is_success:
        logger.error(f"❌ Xero token refresh failed: HTTP {response.status_code} {response.text[:200]}")
        raise RefreshFailed()

    try:
        token_data = XeroTokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        logger.error(f"❌ Invalid token refresh response from Xero: {e}")
        raise RefreshFailed() from e

    expires_at = utcnow() + timedelta(seconds=token_data.expires_in)
    # Xero rotates refresh tokens; keep the old one if none came back
    refresh_token = token_data.refresh_token or token.refresh_token

    XeroTokenRepository.save_refreshed_tokens(
        db,
        ctx.user_id,
        access_token=token_data.access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
    )
    ctx.token = replace(
        token,
        access_token=token_data.access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
    )
    logger.info(f"✅ Xero token refreshed for user {ctx.user_id}, expires {expires_at.isoformat()}")
    return token_data.access_token


async def exchange_code(
    http: httpx.AsyncClient, client_id: str, client_secret: str, code: str
) -> XeroTokenResponse:
    """Exchange an authorization code for tokens"""
    try:
        response = await http.post(
            XERO_TOKEN_URL,
            headers=_token_endpoint_headers(client_id, client_secret),
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": XERO_REDIRECT_URI,
            },
        )
    except httpx.HTTPError as e:
        raise RemoteApiError(f"token exchange request failed: {e}") from e

    if not response.is_success:
        logger.error(f"❌ Xero token exchange failed: HTTP {response.status_code} {response.text[:200]}")
        raise RemoteApiError(response.text[:200], response.status_code)

    try:
        token_data = XeroTokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise RemoteApiError("invalid token response") from e

    if not token_data.refresh_token:
        raise RemoteApiError("token response has no refresh token")
    return token_data


async def revoke_refresh_token(
    http: httpx.AsyncClient, client_id: str, client_secret: str, refresh_token: str
) -> bool:
    """Best-effort revocation at the provider; failures are logged, never raised"""
    try:
        response = await http.post(
            XERO_REVOKE_URL,
            headers=_token_endpoint_headers(client_id, client_secret),
            data={"token": refresh_token},
        )
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Failed to revoke Xero token: {e}")
        return False

    if not response.is_success:
        logger.warning(f"⚠️ Xero token revocation returned HTTP {response.status_code}")
        return False
    return True
