"""Product model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import ActiveFlagMixin, Base, TimestampMixin


class Product(Base, TimestampMixin, ActiveFlagMixin):
    """Stock-keeping product: a raw ingredient or, when ``recipe_id`` is set, a prepared dish."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    article: Mapped[Optional[str]] = mapped_column(String(50), unique=True, index=True, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(50), unique=True, index=True, nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    shelf_life_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    storage_temperature_min: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 1), nullable=True)
    storage_temperature_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 1), nullable=True)
    storage_conditions: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Relationships
    category: Mapped[Optional["Category"]] = relationship("Category", back_populates="products")
    unit: Mapped["Unit"] = relationship("Unit", back_populates="products")
    recipe: Mapped[Optional["Recipe"]] = relationship("Recipe", back_populates="products")
    stock_balances: Mapped[list["StockBalance"]] = relationship(
        "StockBalance", back_populates="product"
    )
