"""Stock document schemas."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from backoffice.models.document import DocumentStatus, DocumentType


class DocumentItemCreate(BaseModel):
    """Document line. ``unit_id`` defaults to the product's own unit."""

    product_id: int = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    unit_id: Optional[int] = Field(default=None, gt=0)
    batch_number: Optional[str] = Field(default=None, max_length=100)
    expiry_date: Optional[dt.date] = None


class DocumentCreate(BaseModel):
    type: DocumentType
    date: dt.date = Field(default_factory=dt.date.today)
    supplier_id: Optional[int] = Field(default=None, gt=0)
    warehouse_from_id: Optional[int] = Field(default=None, gt=0)
    warehouse_to_id: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    items: List[DocumentItemCreate] = []


class DocumentUpdate(BaseModel):
    """Header update. Only fields explicitly set are applied."""

    date: Optional[dt.date] = None
    supplier_id: Optional[int] = Field(default=None, gt=0)
    warehouse_from_id: Optional[int] = Field(default=None, gt=0)
    warehouse_to_id: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


class DocumentFilter(BaseModel):
    type: Optional[DocumentType] = None
    status: Optional[DocumentStatus] = None
    warehouse_id: Optional[int] = None
    supplier_id: Optional[int] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
