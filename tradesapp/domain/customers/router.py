"""Customer router - FastAPI endpoints for customer operations"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_profile
from ...database import get_db
from ...models import Profile
from ..integrations.xero.client import XeroRequestContext, load_request_context
from ..integrations.xero.schemas import XeroSyncResponse
from .schemas import CustomerCreate, CustomerResponse, CustomerUpdate
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("", response_model=list[CustomerResponse])
async def get_customers(
    current_user: Profile = Depends(get_current_profile),
    service: CustomerService = Depends(get_customer_service),
):
    return service.get_customers(current_user)


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    data: CustomerCreate,
    current_user: Profile = Depends(get_current_profile),
    service: CustomerService = Depends(get_customer_service),
):
    return service.create_customer(data, current_user)


@router.post("/sync-xero", response_model=XeroSyncResponse)
async def sync_customers_from_xero(
    ctx: XeroRequestContext = Depends(load_request_context),
    service: CustomerService = Depends(get_customer_service),
):
    """Import customers from Xero contacts (match by Xero id, then by name)"""
    result = await service.sync_from_xero(ctx)
    return XeroSyncResponse(
        success=True,
        message=f"Synced {result.created + result.updated} customers from Xero",
        **result.model_dump(),
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    current_user: Profile = Depends(get_current_profile),
    service: CustomerService = Depends(get_customer_service),
):
    return service.get_customer(customer_id, current_user)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    current_user: Profile = Depends(get_current_profile),
    service: CustomerService = Depends(get_customer_service),
):
    return service.update_customer(customer_id, data, current_user)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    current_user: Profile = Depends(get_current_profile),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_customer(customer_id, current_user)
    return {"success": True}
