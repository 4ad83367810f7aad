"""Warehouse schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from backoffice.models.warehouse import WarehouseType


class WarehouseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: WarehouseType = WarehouseType.MAIN
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    manager_id: Optional[int] = Field(default=None, gt=0)


class WarehouseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[WarehouseType] = None
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    manager_id: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
