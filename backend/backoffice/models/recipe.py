"""Recipe (technological card) models."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import ActiveFlagMixin, Base, TimestampMixin


class Recipe(Base, TimestampMixin, ActiveFlagMixin):
    """Recipe with derived cost and selling price.

    ``cost_price`` is the cost of the batch described by the ingredient list;
    ``selling_price = cost_price * (1 + margin_percent / 100)``.
    """

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    portion_size: Mapped[Decimal] = mapped_column(Numeric(10, 3), default=Decimal("1"), nullable=False)
    cooking_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    difficulty_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-5
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cost_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4), nullable=True)
    margin_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)
    selling_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Relationships
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="(RecipeIngredient.sort_order, RecipeIngredient.id)",
    )
    products: Mapped[list["Product"]] = relationship("Product", back_populates="recipe")
    created_by: Mapped[Optional["User"]] = relationship("User")


class RecipeIngredient(Base, TimestampMixin):
    __tablename__ = "recipe_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    cost_per_unit: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4), nullable=True)
    is_main: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")
    product: Mapped["Product"] = relationship("Product")
    unit: Mapped["Unit"] = relationship("Unit")
