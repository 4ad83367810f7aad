"""Unit of measure schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from backoffice.models.unit import UnitType


class UnitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    short_name: str = Field(min_length=1, max_length=20)
    type: UnitType
    base_unit_id: Optional[int] = Field(default=None, gt=0)
    conversion_factor: Decimal = Field(default=Decimal("1"), gt=0)


class UnitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    short_name: Optional[str] = Field(default=None, min_length=1, max_length=20)
    type: Optional[UnitType] = None
    base_unit_id: Optional[int] = Field(default=None, gt=0)
    conversion_factor: Optional[Decimal] = Field(default=None, gt=0)
