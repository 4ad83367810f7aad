"""Unit of measure model."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base, TimestampMixin


class UnitType(str, Enum):
    """Physical dimension of a unit. Conversion only happens within one type."""

    WEIGHT = "WEIGHT"
    VOLUME = "VOLUME"
    PIECE = "PIECE"
    LENGTH = "LENGTH"


class Unit(Base, TimestampMixin):
    """Unit of measure.

    ``quantity_in_this_unit * conversion_factor`` gives the quantity in
    ``base_unit``. A unit without a base unit is the root of its chain and
    has an implicit factor of 1.
    """

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    short_name: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    type: Mapped[UnitType] = mapped_column(SQLEnum(UnitType), nullable=False, index=True)
    base_unit_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("units.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    conversion_factor: Mapped[Decimal] = mapped_column(
        Numeric(18, 6), default=Decimal("1"), nullable=False
    )

    # Relationships
    base_unit: Mapped[Optional["Unit"]] = relationship(
        "Unit", remote_side="Unit.id", back_populates="derived_units"
    )
    derived_units: Mapped[list["Unit"]] = relationship(
        "Unit", back_populates="base_unit", order_by="Unit.name"
    )
    products: Mapped[list["Product"]] = relationship("Product", back_populates="unit")
