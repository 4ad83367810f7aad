"""Stock count (inventory) models."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base, TimestampMixin


class InventoryStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"


class Inventory(Base, TimestampMixin):
    """A stock count for one warehouse on one date."""

    __tablename__ = "inventories"

    id: Mapped[int] = mapped_column(primary_key=True)
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[InventoryStatus] = mapped_column(
        SQLEnum(InventoryStatus), default=InventoryStatus.DRAFT, nullable=False, index=True
    )
    responsible_person_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    warehouse: Mapped["Warehouse"] = relationship("Warehouse")
    responsible_person: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[responsible_person_id]
    )
    items: Mapped[list["InventoryItem"]] = relationship(
        "InventoryItem",
        back_populates="inventory",
        cascade="all, delete-orphan",
        order_by="InventoryItem.id",
    )


class InventoryItem(Base, TimestampMixin):
    """One counted line. ``expected_quantity`` is frozen when the line is created."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        UniqueConstraint("inventory_id", "product_id", name="uq_inventory_item_product"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_id: Mapped[int] = mapped_column(
        ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    expected_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=Decimal("0"), nullable=False)
    actual_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    counted_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    counted_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    inventory: Mapped["Inventory"] = relationship("Inventory", back_populates="items")
    product: Mapped["Product"] = relationship("Product")
    counted_by: Mapped[Optional["User"]] = relationship("User")
