"""Menu models: menus, display categories, items and warehouse assignments."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import ActiveFlagMixin, Base, TimestampMixin


class Menu(Base, TimestampMixin, ActiveFlagMixin):
    __tablename__ = "menus"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Relationships
    items: Mapped[list["MenuItem"]] = relationship(
        "MenuItem", back_populates="menu", order_by="(MenuItem.sort_order, MenuItem.id)"
    )
    warehouse_menus: Mapped[list["WarehouseMenu"]] = relationship(
        "WarehouseMenu", back_populates="menu", cascade="all, delete-orphan"
    )


class MenuCategory(Base, TimestampMixin, ActiveFlagMixin):
    """Display grouping for menu items (distinct from the product catalogue tree)."""

    __tablename__ = "menu_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    items: Mapped[list["MenuItem"]] = relationship("MenuItem", back_populates="category")


class MenuItem(Base, TimestampMixin):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("menus.id", ondelete="SET NULL"), nullable=True, index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("menu_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey("products.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cost_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    menu: Mapped[Optional["Menu"]] = relationship("Menu", back_populates="items")
    category: Mapped[Optional["MenuCategory"]] = relationship("MenuCategory", back_populates="items")
    product: Mapped[Optional["Product"]] = relationship("Product")


class WarehouseMenu(Base, TimestampMixin):
    """Assignment of a menu to a warehouse (point of sale)."""

    __tablename__ = "warehouse_menus"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "menu_id", name="uq_warehouse_menu"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_id: Mapped[int] = mapped_column(
        ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    warehouse: Mapped["Warehouse"] = relationship("Warehouse")
    menu: Mapped["Menu"] = relationship("Menu", back_populates="warehouse_menus")
