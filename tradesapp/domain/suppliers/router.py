"""Supplier router - FastAPI endpoints for supplier operations"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_profile
from ...database import get_db
from ...models import Profile
from ..integrations.xero.client import XeroRequestContext, load_request_context
from ..integrations.xero.schemas import XeroSyncResponse
from .schemas import SupplierCreate, SupplierResponse, SupplierUpdate
from .service import SupplierService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


def get_supplier_service(db: Session = Depends(get_db)) -> SupplierService:
    """Dependency injection for SupplierService"""
    return SupplierService(db)


@router.get("", response_model=list[SupplierResponse])
async def get_suppliers(
    include_inactive: bool = Query(False),
    current_user: Profile = Depends(get_current_profile),
    service: SupplierService = Depends(get_supplier_service),
):
    return service.get_suppliers(current_user, include_inactive)


@router.post("", response_model=SupplierResponse, status_code=201)
async def create_supplier(
    data: SupplierCreate,
    current_user: Profile = Depends(get_current_profile),
    service: SupplierService = Depends(get_supplier_service),
):
    return service.create_supplier(data, current_user)


@router.post("/sync-xero", response_model=XeroSyncResponse)
async def sync_suppliers_from_xero(
    ctx: XeroRequestContext = Depends(load_request_context),
    service: SupplierService = Depends(get_supplier_service),
):
    """Import suppliers from Xero contacts flagged as suppliers"""
    result = await service.sync_from_xero(ctx)
    return XeroSyncResponse(
        success=True,
        message=f"Synced {result.created + result.updated} suppliers from Xero",
        **result.model_dump(),
    )


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: str,
    current_user: Profile = Depends(get_current_profile),
    service: SupplierService = Depends(get_supplier_service),
):
    return service.get_supplier(supplier_id, current_user)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: str,
    data: SupplierUpdate,
    current_user: Profile = Depends(get_current_profile),
    service: SupplierService = Depends(get_supplier_service),
):
    return service.update_supplier(supplier_id, data, current_user)


@router.delete("/{supplier_id}")
async def delete_supplier(
    supplier_id: str,
    current_user: Profile = Depends(get_current_profile),
    service: SupplierService = Depends(get_supplier_service),
):
    service.delete_supplier(supplier_id, current_user)
    return {"success": True}
