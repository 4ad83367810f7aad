"""Service-layer error taxonomy.

Every business-rule failure raised by ``backoffice.services`` derives from
``ServiceError`` and carries a stable ``code`` plus a ``details`` dict, so a
transport layer can map conditions to status codes without parsing messages.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed input or an inconsistent combination of references."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)},
        )


class StateConflictError(ServiceError):
    """Operation is not allowed in the entity's current lifecycle state."""

    def __init__(self, message: str, current_state: Optional[str] = None):
        super().__init__(message, "STATE_CONFLICT", {"current_state": current_state})


class ReferentialIntegrityError(ServiceError):
    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message, "REFERENTIAL_INTEGRITY", {"resource": resource})


class CircularReferenceError(ServiceError):
    def __init__(self, resource: str, identifier: Any, parent_identifier: Any):
        super().__init__(
            f"{resource} {identifier} cannot be attached under {parent_identifier}: circular reference",
            "CIRCULAR_REFERENCE",
            {"resource": resource, "identifier": str(identifier), "parent": str(parent_identifier)},
        )


class InsufficientStockError(ServiceError):
    """Raised when there's not enough stock of an ingredient."""

    def __init__(self, product_name: str, required: Decimal, available: Decimal, unit: str = ""):
        self.product_name = product_name
        self.required = required
        self.available = available
        self.unit = unit
        suffix = f" {unit}" if unit else ""
        super().__init__(
            f"Insufficient stock for '{product_name}': required {required}{suffix}, available {available}{suffix}",
            "INSUFFICIENT_STOCK",
            {
                "product": product_name,
                "required": str(required),
                "available": str(available),
                "unit": unit,
            },
        )


class ConversionError(ServiceError):
    """Raised when unit conversion between incompatible types is attempted."""

    def __init__(self, from_unit: str, to_unit: str):
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(
            f"Cannot convert '{from_unit}' to '{to_unit}': incompatible unit types",
            "CONVERSION_ERROR",
            {"from_unit": from_unit, "to_unit": to_unit},
        )
