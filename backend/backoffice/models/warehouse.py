"""Warehouse model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import ActiveFlagMixin, Base, TimestampMixin


class WarehouseType(str, Enum):
    MAIN = "MAIN"
    KITCHEN = "KITCHEN"
    RETAIL = "RETAIL"


class Warehouse(Base, TimestampMixin, ActiveFlagMixin):
    """Physical stock location (main store, kitchen, retail point)."""

    __tablename__ = "warehouses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    type: Mapped[WarehouseType] = mapped_column(
        SQLEnum(WarehouseType), default=WarehouseType.MAIN, nullable=False
    )
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    manager_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    manager: Mapped[Optional["User"]] = relationship("User")
    stock_balances: Mapped[list["StockBalance"]] = relationship(
        "StockBalance", back_populates="warehouse"
    )
    stock_movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="warehouse"
    )
