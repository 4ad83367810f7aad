"""Sales and production schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from backoffice.models.sales import PaymentMethod


class SaleItemCreate(BaseModel):
    """Sold line. ``price`` defaults to the menu item's current price."""

    menu_item_id: int = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class SaleCreate(BaseModel):
    warehouse_id: int = Field(gt=0)
    items: List[SaleItemCreate] = Field(min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=1000)


class SaleFilter(BaseModel):
    warehouse_id: Optional[int] = None
    cashier_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class SalesStatsFilter(BaseModel):
    """Grouping is validated by the service so unsupported values surface as a service error."""

    group_by: str = "day"
    warehouse_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class ProductionLogCreate(BaseModel):
    warehouse_id: int = Field(gt=0)
    recipe_id: int = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
