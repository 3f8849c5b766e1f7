"""
Xero Integration Models
Database models for storing Xero OAuth tokens and the locally cached default
contact and items
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base
from .encryption import EncryptedText
from .models import generate_uuid


class XeroToken(Base):
    """Per-user Xero app credentials, OAuth tokens and selected organisation"""
    __tablename__ = "xero_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, unique=True)

    # Xero app credentials (user-supplied, secret encrypted)
    client_id = Column(String(255), nullable=True)
    client_secret = Column(EncryptedText, nullable=True)

    # OAuth tokens (encrypted)
    access_token = Column(EncryptedText, nullable=True)
    refresh_token = Column(EncryptedText, nullable=True)
    expires_at = Column(DateTime, nullable=True)  # naive UTC
    scope = Column(Text, nullable=True)

    # Xero organisation (tenant)
    tenant_id = Column(String(64), nullable=True)
    tenant_name = Column(String(255), nullable=True)
    tenant_type = Column(String(50), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class XeroContact(Base):
    """Local copy of the Xero contact used as the default quote recipient"""
    __tablename__ = "xero_contacts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    xero_contact_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    is_customer = Column(Boolean, default=True, nullable=False)
    is_supplier = Column(Boolean, default=False, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "xero_contact_id", name="uq_xero_contact_user_external"),
    )


class XeroItem(Base):
    """Local copy of the default labour / materials items"""
    __tablename__ = "xero_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    xero_item_id = Column(String(64), nullable=False)
    code = Column(String(30), nullable=False)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    unit_price = Column(Float, nullable=True)
    is_sold = Column(Boolean, default=True, nullable=False)
    is_purchased = Column(Boolean, default=False, nullable=False)
    sales_account_code = Column(String(20), nullable=True)
    purchase_account_code = Column(String(20), nullable=True)
    item_type = Column(String(20), nullable=True)  # labour, materials
    is_default_labour = Column(Boolean, default=False, nullable=False)
    is_default_materials = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "xero_item_id", name="uq_xero_item_user_external"),
    )
