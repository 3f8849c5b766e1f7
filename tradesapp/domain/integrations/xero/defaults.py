"""
Default Xero resources
Ensures the Cash Sales contact and the labour / materials items exist in the
connected organisation and mirrors them into the local cache tables
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from . import client as xero_client
from .client import XeroRequestContext
from .exceptions import RemoteApiError
from .repository import XeroCacheRepository
from .schemas import XeroContact, XeroItem, XeroItemDetails

logger = logging.getLogger(__name__)

CASH_SALES_CONTACT_NAME = "Cash Sales"
LABOUR_ITEM_CODE = "LABOUR"
LABOUR_ITEM_NAME = "Building Labour"
MATERIALS_ITEM_CODE = "MATERIALS"
MATERIALS_ITEM_NAME = "Building Materials"
DEFAULT_LABOUR_RATE = 85.0


@dataclass
class ContactSyncResult:
    synced: int
    default_contact_id: str


@dataclass
class ItemSyncResult:
    synced: int
    labour_item_id: str
    materials_item_id: str


async def get_or_create_cash_sales_contact(db: Session, ctx: XeroRequestContext) -> XeroContact:
    contact = await xero_client.get_contact_by_name(db, ctx, CASH_SALES_CONTACT_NAME)
    if contact:
        return contact

    logger.info(f"Creating {CASH_SALES_CONTACT_NAME} contact in Xero for user {ctx.user_id}")
    return await xero_client.create_contact(
        db,
        ctx,
        XeroContact(name=CASH_SALES_CONTACT_NAME, is_customer=True, is_supplier=False),
    )


async def get_or_create_labour_item(
    db: Session, ctx: XeroRequestContext, default_rate: float = DEFAULT_LABOUR_RATE
) -> XeroItem:
    item = await xero_client.get_item_by_code(db, ctx, LABOUR_ITEM_CODE)
    if item:
        return item

    logger.info(f"Creating {LABOUR_ITEM_NAME} item in Xero for user {ctx.user_id}")
    return await xero_client.create_item(
        db,
        ctx,
        XeroItem(
            code=LABOUR_ITEM_CODE,
            name=LABOUR_ITEM_NAME,
            description="Labour charges",
            is_sold=True,
            is_purchased=False,
            sales_details=XeroItemDetails(unit_price=default_rate),
        ),
    )


async def get_or_create_materials_item(db: Session, ctx: XeroRequestContext) -> XeroItem:
    item = await xero_client.get_item_by_code(db, ctx, MATERIALS_ITEM_CODE)
    if item:
        return item

    logger.info(f"Creating {MATERIALS_ITEM_NAME} item in Xero for user {ctx.user_id}")
    return await xero_client.create_item(
        db,
        ctx,
        XeroItem(
            code=MATERIALS_ITEM_CODE,
            name=MATERIALS_ITEM_NAME,
            description="Materials and supplies",
            is_sold=True,
            is_purchased=True,
        ),
    )


def _require_id(record_id, what: str) -> str:
    if not record_id:
        raise RemoteApiError(f"{what} returned without an id")
    return record_id


async def sync_contacts_to_local(db: Session, ctx: XeroRequestContext) -> ContactSyncResult:
    """Ensure the Cash Sales contact and store it as the user's default contact"""
    contact = await get_or_create_cash_sales_contact(db, ctx)
    contact_id = _require_id(contact.contact_id, "Cash Sales contact")

    XeroCacheRepository.upsert_default_contact(
        db,
        ctx.user_id,
        contact_id,
        name=contact.name,
        email=contact.email_address or None,
        is_customer=True,
        is_supplier=False,
    )
    logger.info(f"✅ Default contact {contact_id} synced for user {ctx.user_id}")
    return ContactSyncResult(synced=1, default_contact_id=contact_id)


def _item_values(item: XeroItem, item_type: str, is_purchased: bool) -> dict:
    sales = item.sales_details
    purchase = item.purchase_details
    return {
        "code": item.code,
        "name": item.name,
        "description": item.description or None,
        "unit_price": sales.unit_price if sales else None,
        "is_sold": True,
        "is_purchased": is_purchased,
        "sales_account_code": sales.account_code if sales else None,
        "purchase_account_code": purchase.account_code if purchase else None,
        "item_type": item_type,
    }


async def sync_items_to_local(
    db: Session, ctx: XeroRequestContext, default_labour_rate: float = DEFAULT_LABOUR_RATE
) -> ItemSyncResult:
    """Ensure the labour and materials items and store them as the user's defaults"""
    labour = await get_or_create_labour_item(db, ctx, default_labour_rate)
    materials = await get_or_create_materials_item(db, ctx)
    labour_id = _require_id(labour.item_id, "Labour item")
    materials_id = _require_id(materials.item_id, "Materials item")

    XeroCacheRepository.upsert_default_item(
        db,
        ctx.user_id,
        labour_id,
        "is_default_labour",
        is_default_materials=False,
        **_item_values(labour, "labour", is_purchased=False),
    )
    XeroCacheRepository.upsert_default_item(
        db,
        ctx.user_id,
        materials_id,
        "is_default_materials",
        is_default_labour=False,
        **_item_values(materials, "materials", is_purchased=True),
    )
    logger.info(f"✅ Default items synced for user {ctx.user_id}: labour={labour_id}, materials={materials_id}")
    return ItemSyncResult(synced=2, labour_item_id=labour_id, materials_item_id=materials_id)


async def sync_all(
    db: Session, ctx: XeroRequestContext, default_labour_rate: float = DEFAULT_LABOUR_RATE
) -> tuple[ContactSyncResult, ItemSyncResult]:
    contacts = await sync_contacts_to_local(db, ctx)
    items = await sync_items_to_local(db, ctx, default_labour_rate)
    return contacts, items
