"""Product category schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[int] = Field(default=None, gt=0)
    sort_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[int] = Field(default=None, gt=0)
    sort_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
