"""SQLAlchemy declarative base and common column mixins."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ActiveFlagMixin:
    """Soft-delete via an ``is_active`` flag.

    Deactivated rows stay in place so documents, movements and sales that
    reference them remain valid.
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="1", nullable=False, index=True,
    )

    def deactivate(self) -> None:
        self.is_active = False

    @classmethod
    def active(cls):
        """SQLAlchemy filter expression: ``WHERE is_active = TRUE``."""
        return cls.is_active.is_(True)
