"""
Xero API client
Authenticated request wrapper over the Xero Accounting API. All state lives in
an explicit per-request context; nothing is cached between requests.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import httpx
from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ....auth import get_current_profile
from ....config import XERO_API_BASE_URL, XERO_HTTP_TIMEOUT
from ....database import get_db
from ....models import Profile
from .exceptions import RemoteApiError, TenantNotSelected
from .repository import XeroTokenRepository
from .schemas import XeroContact, XeroItem, XeroQuote
from .token_service import TokenState, ensure_valid_access_token

logger = logging.getLogger(__name__)

ERROR_DETAIL_MAX_LENGTH = 200


@dataclass
class XeroRequestContext:
    """Everything a Xero call needs for one inbound request"""

    user_id: str
    token: Optional[TokenState]
    http: httpx.AsyncClient


async def get_xero_http_client():
    """Outbound HTTP client shared by all Xero calls of one request"""
    async with httpx.AsyncClient(timeout=XERO_HTTP_TIMEOUT) as client:
        yield client


async def load_request_context(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_xero_http_client),
) -> XeroRequestContext:
    """Build the request context from the user's token row (None when absent)"""
    row = XeroTokenRepository.get_token(db, profile.id)
    token = TokenState.from_row(row) if row else None
    return XeroRequestContext(user_id=profile.id, token=token, http=http)


def extract_error_detail(body: str) -> str:
    """Pull a readable message out of a Xero error body"""
    try:
        payload = json.loads(body)
    except ValueError:
        return body[:ERROR_DETAIL_MAX_LENGTH]
    if not isinstance(payload, dict):
        return body[:ERROR_DETAIL_MAX_LENGTH]

    detail = payload.get("Message") or payload.get("Detail") or payload.get("Title")

    # Validation failures carry the useful text per element
    validation_messages = []
    for element in payload.get("Elements") or []:
        if not isinstance(element, dict):
            continue
        for error in element.get("ValidationErrors") or []:
            if isinstance(error, dict) and error.get("Message"):
                validation_messages.append(error["Message"])
    if validation_messages:
        detail = f"{detail}: {'; '.join(validation_messages)}" if detail else "; ".join(validation_messages)

    return (detail or body)[:ERROR_DETAIL_MAX_LENGTH]


async def xero_request(
    db: Session,
    ctx: XeroRequestContext,
    endpoint: str,
    method: str = "GET",
    json_body: Optional[dict] = None,
    params: Optional[dict] = None,
) -> dict[str, Any]:
    """
    Call the Xero Accounting API.

    Raises:
        NotConnected / RefreshFailed: from the token refresher
        TenantNotSelected: no organisation stored on the token row
        RemoteApiError: transport failure or non-2xx response
    """
    access_token = await ensure_valid_access_token(db, ctx)
    if not ctx.token.tenant_id:
        raise TenantNotSelected()

    logger.info(f"Xero API request: {method} {endpoint}")
    try:
        response = await ctx.http.request(
            method,
            f"{XERO_API_BASE_URL}/{endpoint.lstrip('/')}",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Xero-Tenant-Id": ctx.token.tenant_id,
                "Accept": "application/json",
            },
            json=json_body,
            params=params,
        )
    except httpx.HTTPError as e:
        logger.error(f"❌ Xero API request failed ({method} {endpoint}): {e}")
        raise RemoteApiError(f"request failed: {e.__class__.__name__}") from e

    if not response.is_success:
        logger.error(f"❌ Xero API error ({method} {endpoint}): {response.status_code} {response.text[:500]}")
        raise RemoteApiError(extract_error_detail(response.text), response.status_code)

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as e:
        raise RemoteApiError("invalid JSON response") from e


def _parse_list(model, payload: dict, key: str) -> list:
    try:
        return [model.model_validate(entry) for entry in payload.get(key) or []]
    except ValidationError as e:
        logger.error(f"❌ Unexpected {key} payload from Xero: {e}")
        raise RemoteApiError(f"unexpected {key} payload") from e


def _first_or_error(model, payload: dict, key: str):
    records = _parse_list(model, payload, key)
    if not records:
        raise RemoteApiError(f"empty {key} response")
    return records[0]


# ==================== CONTACTS ====================


async def get_contacts(db: Session, ctx: XeroRequestContext) -> list[XeroContact]:
    payload = await xero_request(db, ctx, "/Contacts")
    return _parse_list(XeroContact, payload, "Contacts")


async def get_contact_by_name(db: Session, ctx: XeroRequestContext, name: str) -> Optional[XeroContact]:
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    payload = await xero_request(db, ctx, "/Contacts", params={"where": f'Name=="{escaped}"'})
    contacts = _parse_list(XeroContact, payload, "Contacts")
    return contacts[0] if contacts else None


async def create_contact(db: Session, ctx: XeroRequestContext, contact: XeroContact) -> XeroContact:
    payload = await xero_request(db, ctx, "/Contacts", method="POST", json_body={"Contacts": [contact.to_xero()]})
    return _first_or_error(XeroContact, payload, "Contacts")


# ==================== ITEMS ====================


async def get_item_by_code(db: Session, ctx: XeroRequestContext, code: str) -> Optional[XeroItem]:
    """Look up an item by code; Xero answers 404 for unknown codes"""
    try:
        payload = await xero_request(db, ctx, f"/Items/{quote(code, safe='')}")
    except RemoteApiError as e:
        if e.http_status == 404:
            return None
        raise
    items = _parse_list(XeroItem, payload, "Items")
    return items[0] if items else None


async def create_item(db: Session, ctx: XeroRequestContext, item: XeroItem) -> XeroItem:
    payload = await xero_request(db, ctx, "/Items", method="POST", json_body={"Items": [item.to_xero()]})
    return _first_or_error(XeroItem, payload, "Items")


# ==================== QUOTES ====================


async def create_quote(db: Session, ctx: XeroRequestContext, quote_payload: dict) -> XeroQuote:
    payload = await xero_request(db, ctx, "/Quotes", method="POST", json_body={"Quotes": [quote_payload]})
    return _first_or_error(XeroQuote, payload, "Quotes")
