"""Recipe schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class RecipeIngredientCreate(BaseModel):
    """Recipe ingredient. A zero or missing ``cost_per_unit`` falls back to the stock average price."""

    product_id: int = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    unit_id: int = Field(gt=0)
    cost_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    is_main: bool = False
    sort_order: Optional[int] = Field(default=None, ge=0)


class RecipeBase(BaseModel):
    description: Optional[str] = None
    cooking_time: Optional[int] = Field(default=None, ge=0)
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    instructions: Optional[str] = None
    margin_percent: Optional[Decimal] = Field(default=None, ge=0)


class RecipeCreate(RecipeBase):
    name: str = Field(min_length=1, max_length=255)
    portion_size: Decimal = Field(default=Decimal("1"), gt=0)
    ingredients: List[RecipeIngredientCreate] = Field(min_length=1)


class RecipeUpdate(RecipeBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    portion_size: Optional[Decimal] = Field(default=None, gt=0)
    ingredients: Optional[List[RecipeIngredientCreate]] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None


class RecipeFilter(BaseModel):
    search: Optional[str] = None
    is_active: Optional[bool] = True
    difficulty_level: Optional[int] = None
    max_cooking_time: Optional[int] = None
