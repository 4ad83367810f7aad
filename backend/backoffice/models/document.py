"""Stock documents: receipts, transfers, write-offs and inventory adjustments."""

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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base, TimestampMixin


class DocumentType(str, Enum):
    RECEIPT = "RECEIPT"
    TRANSFER = "TRANSFER"
    WRITEOFF = "WRITEOFF"
    INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class Document(Base, TimestampMixin):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    type: Mapped[DocumentType] = mapped_column(SQLEnum(DocumentType), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[DocumentStatus] = mapped_column(
        SQLEnum(DocumentStatus), default=DocumentStatus.DRAFT, nullable=False, index=True
    )
    supplier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("suppliers.id"), nullable=True, index=True
    )
    warehouse_from_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("warehouses.id"), nullable=True, index=True
    )
    warehouse_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("warehouses.id"), nullable=True, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(21, 7), default=Decimal("0"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", back_populates="documents")
    warehouse_from: Mapped[Optional["Warehouse"]] = relationship(
        "Warehouse", foreign_keys=[warehouse_from_id]
    )
    warehouse_to: Mapped[Optional["Warehouse"]] = relationship(
        "Warehouse", foreign_keys=[warehouse_to_id]
    )
    created_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[created_by_id])
    approved_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[approved_by_id])
    items: Mapped[list["DocumentItem"]] = relationship(
        "DocumentItem",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentItem.id",
    )
    movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="document"
    )


class DocumentItem(Base, TimestampMixin):
    __tablename__ = "document_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    document_id: Mapped[int] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"), nullable=False)
    # quantity (3 places) x price (4 places), kept exact
    total: Mapped[Decimal] = mapped_column(Numeric(21, 7), default=Decimal("0"), nullable=False)
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    # Relationships
    document: Mapped["Document"] = relationship("Document", back_populates="items")
    product: Mapped["Product"] = relationship("Product")
    unit: Mapped["Unit"] = relationship("Unit")
