"""Supplier service - Business logic for supplier operations"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Profile, Supplier
from ..integrations.xero.client import XeroRequestContext
from ..integrations.xero.reconcile import sync_contacts_into
from ..integrations.xero.schemas import SyncResult, XeroContact
from .repository import SupplierRepository
from .schemas import SupplierCreate, SupplierUpdate

logger = logging.getLogger(__name__)


def is_supplier_contact(contact: XeroContact) -> bool:
    return contact.is_supplier is True


def supplier_fields_from_contact(contact: XeroContact) -> dict:
    """Supplier columns from a Xero contact (postal address preferred over street)"""
    address = contact.find_address("POBOX", "STREET")
    return {
        "name": contact.name,
        "phone": contact.find_phone("DEFAULT"),
        "website": contact.website or None,
        "address_line1": (address.address_line1 or None) if address else None,
        "suburb": (address.city or None) if address else None,
        "state": (address.region or None) if address else None,
        "postcode": (address.postal_code or None) if address else None,
    }


class SupplierService:
    """Service layer for supplier business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SupplierRepository()

    def get_suppliers(self, user: Profile, include_inactive: bool = False) -> list[Supplier]:
        return self.repo.get_suppliers(self.db, user.id, include_inactive)

    def get_supplier(self, supplier_id: str, user: Profile) -> Supplier:
        supplier = self.repo.get_supplier_by_id(self.db, supplier_id, user.id)
        if not supplier:
            raise HTTPException(status_code=404, detail="Supplier not found")
        return supplier

    def create_supplier(self, data: SupplierCreate, user: Profile) -> Supplier:
        logger.info(f"📥 Creating supplier for user_id: {user.id}")
        return self.repo.create_supplier(self.db, user.id, **data.model_dump())

    def update_supplier(self, supplier_id: str, data: SupplierUpdate, user: Profile) -> Supplier:
        supplier = self.get_supplier(supplier_id, user)
        return self.repo.update_supplier(self.db, supplier, **data.model_dump(exclude_unset=True))

    def delete_supplier(self, supplier_id: str, user: Profile) -> None:
        supplier = self.get_supplier(supplier_id, user)
        self.repo.delete_supplier(self.db, supplier)

    async def sync_from_xero(self, ctx: XeroRequestContext) -> SyncResult:
        """Import Xero supplier contacts, linking existing suppliers where possible"""
        logger.info(f"Syncing suppliers from Xero for user: {ctx.user_id}")
        return await sync_contacts_into(
            self.db,
            ctx,
            Supplier,
            is_supplier_contact,
            supplier_fields_from_contact,
            insert_defaults={"is_active": True},
        )
