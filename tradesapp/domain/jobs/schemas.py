"""Job domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class JobCreate(BaseModel):
    title: str
    customer_id: Optional[str] = None
    description: Optional[str] = None
    status: str = "quote"
    address: Optional[str] = None
    labour_rate: Optional[float] = None
    notes: Optional[str] = None


class LabourCreate(BaseModel):
    description: str
    hours: float = Field(0, ge=0)
    rate: Optional[float] = Field(None, ge=0)


class MaterialCreate(BaseModel):
    name: str
    supplier: Optional[str] = None
    qty: float = Field(1, gt=0)
    unit: str = "each"
    buy_price: float = Field(0, ge=0)
    markup_pct: Optional[float] = None
    sell_price: Optional[float] = Field(None, ge=0)


class LabourResponse(BaseModel):
    id: str
    description: str
    hours: float
    rate: float
    total: float

    model_config = ConfigDict(from_attributes=True)


class MaterialResponse(BaseModel):
    id: str
    name: str
    supplier: Optional[str] = None
    qty: float
    unit: str
    buy_price: float
    markup_pct: float
    sell_price: float
    line_total: float

    model_config = ConfigDict(from_attributes=True)


class JobResponse(BaseModel):
    id: str
    title: str
    customer_id: Optional[str] = None
    description: Optional[str] = None
    status: str
    address: Optional[str] = None
    labour_rate: Optional[float] = None
    notes: Optional[str] = None
    xero_quote_id: Optional[str] = None
    xero_quote_number: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class JobDetailResponse(JobResponse):
    labour: list[LabourResponse] = []
    materials: list[MaterialResponse] = []
