"""Product schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ProductBase(BaseModel):
    """Fields shared by create and update."""

    article: Optional[str] = Field(default=None, max_length=50)
    barcode: Optional[str] = Field(default=None, max_length=50)
    category_id: Optional[int] = Field(default=None, gt=0)
    recipe_id: Optional[int] = Field(default=None, gt=0)
    shelf_life_days: Optional[int] = Field(default=None, ge=0)
    storage_temperature_min: Optional[Decimal] = None
    storage_temperature_max: Optional[Decimal] = None
    storage_conditions: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def check_temperature_range(self):
        low, high = self.storage_temperature_min, self.storage_temperature_max
        if low is not None and high is not None and low > high:
            raise ValueError("storage_temperature_min must not exceed storage_temperature_max")
        return self


class ProductCreate(ProductBase):
    name: str = Field(min_length=1, max_length=255)
    unit_id: int = Field(gt=0)


class ProductUpdate(ProductBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    unit_id: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class ProductFilter(BaseModel):
    search: Optional[str] = None
    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    is_active: Optional[bool] = True
