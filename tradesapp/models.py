import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    auth_provider = Column(String(50), nullable=False)  # google, microsoft
    auth_provider_id = Column(String(255), nullable=False)  # sub / oid claim
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    trade = Column(String(50), nullable=True)  # electrician, plumber, builder, ...
    company_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    default_labour_rate = Column(Float, default=85.0, nullable=False)
    default_markup_pct = Column(Float, default=20.0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("auth_provider", "auth_provider_id", name="uq_profile_provider_identity"),
    )


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    # Xero ContactID once linked by a sync
    xero_contact_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    jobs = relationship("Job", back_populates="customer")


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    address_line1 = Column(String(255), nullable=True)
    address_line2 = Column(String(255), nullable=True)
    suburb = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postcode = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    xero_contact_id = Column(String(64), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(50), default="quote", nullable=False)  # quote, scheduled, in_progress, ...
    address = Column(Text, nullable=True)
    labour_rate = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    xero_quote_id = Column(String(64), nullable=True)
    xero_quote_number = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="jobs")
    labour = relationship(
        "JobLabour", back_populates="job", cascade="all, delete-orphan", order_by="JobLabour.created_at"
    )
    materials = relationship(
        "JobMaterial", back_populates="job", cascade="all, delete-orphan", order_by="JobMaterial.created_at"
    )


class JobLabour(Base):
    __tablename__ = "job_labour"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    description = Column(String(500), nullable=False)
    hours = Column(Float, nullable=False)
    rate = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    job = relationship("Job", back_populates="labour")


class JobMaterial(Base):
    __tablename__ = "job_materials"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    name = Column(String(255), nullable=False)
    supplier = Column(String(255), nullable=True)
    qty = Column(Float, nullable=False)
    unit = Column(String(50), default="each", nullable=False)
    buy_price = Column(Float, default=0.0, nullable=False)
    markup_pct = Column(Float, default=0.0, nullable=False)
    sell_price = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    job = relationship("Job", back_populates="materials")
