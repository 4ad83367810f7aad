"""Supplier model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import ActiveFlagMixin, Base, TimestampMixin


class Supplier(Base, TimestampMixin, ActiveFlagMixin):
    """Supplier of goods received through RECEIPT documents."""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    inn: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)  # tax id
    contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Relationships
    documents: Mapped[list["Document"]] = relationship("Document", back_populates="supplier")
