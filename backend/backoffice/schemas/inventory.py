"""Inventory (stock count) schemas."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from backoffice.models.inventory import InventoryStatus


class InventoryItemCreate(BaseModel):
    """Count line. Missing expected quantity and price are taken from the current balance."""

    product_id: int = Field(gt=0)
    expected_quantity: Optional[Decimal] = None
    actual_quantity: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class InventoryCreate(BaseModel):
    warehouse_id: int = Field(gt=0)
    date: dt.date = Field(default_factory=dt.date.today)
    responsible_person_id: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    items: List[InventoryItemCreate] = []


class InventoryFromBalancesCreate(BaseModel):
    """Create a count sheet pre-filled from current stock balances."""

    warehouse_id: int = Field(gt=0)
    date: dt.date = Field(default_factory=dt.date.today)
    responsible_person_id: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    category_ids: Optional[List[int]] = None
    product_ids: Optional[List[int]] = None
    include_zero_balances: bool = False


class InventoryUpdate(BaseModel):
    date: Optional[dt.date] = None
    responsible_person_id: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


class InventoryItemCount(BaseModel):
    """Recorded count for one line."""

    actual_quantity: Decimal = Field(ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class InventoryItemBulkCount(InventoryItemCount):
    id: int = Field(gt=0)


class InventoryFilter(BaseModel):
    warehouse_id: Optional[int] = None
    status: Optional[InventoryStatus] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
