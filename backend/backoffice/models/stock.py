"""Stock ledger models: per-location balances and the movement journal."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base, TimestampMixin


class MovementType(str, Enum):
    IN = "IN"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    WRITEOFF = "WRITEOFF"
    PRODUCTION_USE = "PRODUCTION_USE"


class StockBalance(Base, TimestampMixin):
    """Running quantity and average price for a (warehouse, product) pair.

    Derived state: written only by ``stock_service.apply_movement`` and
    ``stock_service.recalculate_balance``.
    """

    __tablename__ = "stock_balances"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "product_id", name="uq_stock_balance_warehouse_product"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=Decimal("0"), nullable=False)
    avg_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"), nullable=False)

    # Relationships
    warehouse: Mapped["Warehouse"] = relationship("Warehouse", back_populates="stock_balances")
    product: Mapped["Product"] = relationship("Product", back_populates="stock_balances")


class StockMovement(Base):
    """Append-only journal entry. ``quantity`` is signed: positive in, negative out."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_warehouse_product", "warehouse_id", "product_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    type: Mapped[MovementType] = mapped_column(SQLEnum(MovementType), nullable=False, index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"), nullable=False)
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    document_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("documents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    production_log_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("production_logs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    warehouse: Mapped["Warehouse"] = relationship("Warehouse", back_populates="stock_movements")
    product: Mapped["Product"] = relationship("Product")
    document: Mapped[Optional["Document"]] = relationship("Document", back_populates="movements")
