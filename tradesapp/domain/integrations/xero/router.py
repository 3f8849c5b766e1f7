"""Xero router - Connection, OAuth callback, default sync and quote endpoints"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ....auth import get_current_profile
from ....database import get_db
from ....models import Profile
from .client import XeroRequestContext, get_xero_http_client, load_request_context
from .defaults import sync_all, sync_contacts_to_local, sync_items_to_local
from .oauth import create_connect_request, handle_oauth_callback
from .quotes import create_quote_for_job
from .schemas import CreateQuoteRequest, XeroTokenCreate, XeroTokenUpdate
from .service import XeroConnectionService, token_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/xero", tags=["Xero"])


def get_xero_service(db: Session = Depends(get_db)) -> XeroConnectionService:
    """Dependency injection for XeroConnectionService"""
    return XeroConnectionService(db)


# ============================================================================
# TOKEN RECORD
# ============================================================================


@router.get("/token")
async def get_token(
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
):
    """Get the user's Xero connection (secrets masked)"""
    token = service.get_token(current_user)
    return {"token": token_to_response(token) if token else None}


@router.post("/token", status_code=201)
async def create_token(
    data: XeroTokenCreate,
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
):
    token = service.create_token(data, current_user)
    return {"token": token_to_response(token)}


@router.put("/token")
async def update_token(
    data: XeroTokenUpdate,
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
):
    token = service.update_token(data, current_user)
    return {"token": token_to_response(token)}


@router.delete("/token")
async def delete_token(
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
    http: httpx.AsyncClient = Depends(get_xero_http_client),
):
    """Disconnect Xero"""
    await service.disconnect(current_user, http)
    return {"success": True}


# ============================================================================
# OAUTH
# ============================================================================


@router.get("/connect")
async def connect(
    current_user: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Authorization URL with a signed state for the Xero consent screen"""
    return create_connect_request(db, current_user)


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_xero_http_client),
):
    """Xero redirect target; always redirects back to the settings page"""
    redirect_url = await handle_oauth_callback(db, http, code, state, error)
    return RedirectResponse(redirect_url, status_code=302)


# ============================================================================
# DEFAULT CONTACT AND ITEMS
# ============================================================================


@router.post("/sync")
async def sync_xero_data(
    current_user: Profile = Depends(get_current_profile),
    ctx: XeroRequestContext = Depends(load_request_context),
    db: Session = Depends(get_db),
):
    """Ensure the default contact and items exist in Xero and locally"""
    logger.info(f"Starting Xero sync for user: {current_user.id}")
    contacts, items = await sync_all(db, ctx, current_user.default_labour_rate)
    return {
        "success": True,
        "message": "Xero data synced successfully",
        "data": {
            "contacts_synced": contacts.synced,
            "default_contact_id": contacts.default_contact_id,
            "items_synced": items.synced,
            "labour_item_id": items.labour_item_id,
            "materials_item_id": items.materials_item_id,
        },
    }


@router.get("/contacts")
async def get_contacts(
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
):
    return service.get_cached_contacts(current_user)


@router.post("/contacts")
async def sync_contacts(
    ctx: XeroRequestContext = Depends(load_request_context),
    db: Session = Depends(get_db),
):
    result = await sync_contacts_to_local(db, ctx)
    return {
        "success": True,
        "message": "Contacts synced successfully",
        "synced": result.synced,
        "default_contact_id": result.default_contact_id,
    }


@router.get("/items")
async def get_items(
    current_user: Profile = Depends(get_current_profile),
    service: XeroConnectionService = Depends(get_xero_service),
):
    return service.get_cached_items(current_user)


@router.post("/items")
async def sync_items(
    current_user: Profile = Depends(get_current_profile),
    ctx: XeroRequestContext = Depends(load_request_context),
    db: Session = Depends(get_db),
):
    result = await sync_items_to_local(db, ctx, current_user.default_labour_rate)
    return {
        "success": True,
        "message": "Items synced successfully",
        "synced": result.synced,
        "labour_item_id": result.labour_item_id,
        "materials_item_id": result.materials_item_id,
    }


# ============================================================================
# QUOTES
# ============================================================================


@router.post("/quotes")
async def create_quote(
    data: CreateQuoteRequest,
    ctx: XeroRequestContext = Depends(load_request_context),
    db: Session = Depends(get_db),
):
    """Create a Xero quote from a job's labour and materials"""
    return await create_quote_for_job(db, ctx, data.jobId)
