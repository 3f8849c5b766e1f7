"""Xero domain schemas

Remote payload contracts (validated at the API boundary; PascalCase provider
names kept as aliases) and the request/response models of our own routes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class XeroModel(BaseModel):
    """Base for Xero payloads: accept aliases and field names, ignore extras"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_xero(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)


class XeroPhone(XeroModel):
    phone_type: Optional[str] = Field(None, alias="PhoneType")
    phone_number: Optional[str] = Field(None, alias="PhoneNumber")


class XeroAddress(XeroModel):
    address_type: Optional[str] = Field(None, alias="AddressType")
    address_line1: Optional[str] = Field(None, alias="AddressLine1")
    city: Optional[str] = Field(None, alias="City")
    region: Optional[str] = Field(None, alias="Region")
    postal_code: Optional[str] = Field(None, alias="PostalCode")


class XeroContact(XeroModel):
    contact_id: Optional[str] = Field(None, alias="ContactID")
    name: str = Field(alias="Name")
    email_address: Optional[str] = Field(None, alias="EmailAddress")
    is_customer: Optional[bool] = Field(None, alias="IsCustomer")
    is_supplier: Optional[bool] = Field(None, alias="IsSupplier")
    website: Optional[str] = Field(None, alias="Website")
    phones: list[XeroPhone] = Field(default_factory=list, alias="Phones")
    addresses: list[XeroAddress] = Field(default_factory=list, alias="Addresses")

    def find_phone(self, preferred_type: str) -> Optional[str]:
        """Phone number of the preferred type, else the first non-empty one"""
        for phone in self.phones:
            if phone.phone_type == preferred_type and phone.phone_number:
                return phone.phone_number
        for phone in self.phones:
            if phone.phone_number:
                return phone.phone_number
        return None

    def find_address(self, *types: str) -> Optional[XeroAddress]:
        """First address matching the given types, in order of preference"""
        for address_type in types:
            for address in self.addresses:
                if address.address_type == address_type:
                    return address
        return None


class XeroItemDetails(XeroModel):
    unit_price: Optional[float] = Field(None, alias="UnitPrice")
    account_code: Optional[str] = Field(None, alias="AccountCode")


class XeroItem(XeroModel):
    item_id: Optional[str] = Field(None, alias="ItemID")
    code: str = Field(alias="Code")
    name: Optional[str] = Field(None, alias="Name")
    description: Optional[str] = Field(None, alias="Description")
    is_sold: Optional[bool] = Field(None, alias="IsSold")
    is_purchased: Optional[bool] = Field(None, alias="IsPurchased")
    sales_details: Optional[XeroItemDetails] = Field(None, alias="SalesDetails")
    purchase_details: Optional[XeroItemDetails] = Field(None, alias="PurchaseDetails")


class XeroLineItem(XeroModel):
    item_code: str = Field(alias="ItemCode")
    description: str = Field(alias="Description")
    quantity: float = Field(alias="Quantity")
    unit_amount: float = Field(alias="UnitAmount")
    account_code: Optional[str] = Field(None, alias="AccountCode")


class XeroQuote(XeroModel):
    quote_id: Optional[str] = Field(None, alias="QuoteID")
    quote_number: Optional[str] = Field(None, alias="QuoteNumber")
    total: Optional[float] = Field(None, alias="Total")


class XeroTenantConnection(XeroModel):
    tenant_id: str = Field(alias="tenantId")
    tenant_name: Optional[str] = Field(None, alias="tenantName")
    tenant_type: Optional[str] = Field(None, alias="tenantType")


class XeroTokenResponse(BaseModel):
    """Body of a successful token endpoint response"""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 1800
    scope: Optional[str] = None
    token_type: Optional[str] = None


# ---------------------------------------------------------------------------
# API request/response schemas
# ---------------------------------------------------------------------------


class XeroTokenCreate(BaseModel):
    """Schema for starting Xero setup with the user's app credentials"""

    client_id: str
    client_secret: str
    scope: Optional[str] = None


class XeroTokenUpdate(BaseModel):
    """Schema for partially updating the token record"""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scope: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_type: Optional[str] = None


class XeroTokenOut(BaseModel):
    """Token record as exposed to the frontend; secrets are never returned"""

    id: str
    user_id: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None  # masked
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_type: Optional[str] = None
    connected: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class XeroContactOut(BaseModel):
    id: str
    xero_contact_id: str
    name: str
    email: Optional[str] = None
    is_customer: bool
    is_supplier: bool
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


class XeroItemOut(BaseModel):
    id: str
    xero_item_id: str
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    unit_price: Optional[float] = None
    is_sold: bool
    is_purchased: bool
    sales_account_code: Optional[str] = None
    item_type: Optional[str] = None
    is_default_labour: bool
    is_default_materials: bool

    model_config = ConfigDict(from_attributes=True)


class CreateQuoteRequest(BaseModel):
    jobId: str


class SyncResult(BaseModel):
    """Tally of one bulk reconciliation pass (not persisted)"""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0


class XeroSyncResponse(SyncResult):
    """Outcome of a bulk customer/supplier sync from Xero"""

    success: bool = True
    message: str
