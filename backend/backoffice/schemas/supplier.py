"""Supplier schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class SupplierBase(BaseModel):
    inn: Optional[str] = Field(default=None, max_length=20)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)


class SupplierCreate(SupplierBase):
    name: str = Field(min_length=1, max_length=255)


class SupplierUpdate(SupplierBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_active: Optional[bool] = None
