"""Customer service - Business logic for customer operations"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Customer, Profile
from ..integrations.xero.client import XeroRequestContext
from ..integrations.xero.reconcile import sync_contacts_into
from ..integrations.xero.schemas import SyncResult, XeroContact
from .repository import CustomerRepository
from .schemas import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)


def is_customer_contact(contact: XeroContact) -> bool:
    """Everything except supplier-only contacts"""
    return contact.is_customer is not False


def customer_fields_from_contact(contact: XeroContact) -> dict:
    return {
        "name": contact.name,
        "email": contact.email_address or None,
        "phone": contact.find_phone("MOBILE"),
    }


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def get_customers(self, user: Profile) -> list[Customer]:
        return self.repo.get_customers(self.db, user.id)

    def get_customer(self, customer_id: str, user: Profile) -> Customer:
        customer = self.repo.get_customer_by_id(self.db, customer_id, user.id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        return customer

    def create_customer(self, data: CustomerCreate, user: Profile) -> Customer:
        logger.info(f"📥 Creating customer for user_id: {user.id}")
        return self.repo.create_customer(self.db, user.id, **data.model_dump())

    def update_customer(self, customer_id: str, data: CustomerUpdate, user: Profile) -> Customer:
        customer = self.get_customer(customer_id, user)
        return self.repo.update_customer(self.db, customer, **data.model_dump(exclude_unset=True))

    def delete_customer(self, customer_id: str, user: Profile) -> None:
        customer = self.get_customer(customer_id, user)
        self.repo.delete_customer(self.db, customer)
        logger.info(f"🗑️ Deleted customer {customer_id} for user_id: {user.id}")

    async def sync_from_xero(self, ctx: XeroRequestContext) -> SyncResult:
        """Import Xero customer contacts, linking existing customers where possible"""
        logger.info(f"Syncing customers from Xero for user: {ctx.user_id}")
        return await sync_contacts_into(
            self.db, ctx, Customer, is_customer_contact, customer_fields_from_contact
        )
