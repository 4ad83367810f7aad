"""Units of measure and quantity conversion.

Each unit optionally points at a base unit of the same type with a
conversion factor: ``quantity_in_unit * conversion_factor`` is the quantity
in the base unit. Chains are walked iteratively and must never form a cycle.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from backoffice.core.exceptions import (
    CircularReferenceError,
    ConversionError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from backoffice.models.product import Product
from backoffice.models.unit import Unit, UnitType
from backoffice.schemas.unit import UnitCreate, UnitUpdate

logger = logging.getLogger(__name__)

DEFAULT_UNITS = [
    # (name, short_name, type, base short_name, factor)
    ("Kilogram", "kg", UnitType.WEIGHT, None, None),
    ("Gram", "g", UnitType.WEIGHT, "kg", Decimal("0.001")),
    ("Litre", "l", UnitType.VOLUME, None, None),
    ("Millilitre", "ml", UnitType.VOLUME, "l", Decimal("0.001")),
    ("Piece", "pcs", UnitType.PIECE, None, None),
    ("Pack", "pack", UnitType.PIECE, None, None),
    ("Metre", "m", UnitType.LENGTH, None, None),
    ("Centimetre", "cm", UnitType.LENGTH, "m", Decimal("0.01")),
]


def get_units(db: Session) -> List[Unit]:
    return db.query(Unit).order_by(Unit.type, Unit.name).all()


def get_units_by_type(db: Session, unit_type: UnitType) -> List[Unit]:
    return db.query(Unit).filter(Unit.type == unit_type).order_by(Unit.name).all()


def get_base_units(db: Session) -> List[Unit]:
    return db.query(Unit).filter(Unit.base_unit_id.is_(None)).order_by(Unit.type, Unit.name).all()


def get_unit_by_id(db: Session, unit_id: int) -> Unit:
    unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not unit:
        raise NotFoundError("Unit", unit_id)
    return unit


def _check_unique(
    db: Session,
    name: Optional[str] = None,
    short_name: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> None:
    if name is not None:
        query = db.query(Unit.id).filter(Unit.name == name)
        if exclude_id is not None:
            query = query.filter(Unit.id != exclude_id)
        if query.first():
            raise ValidationError(f"Unit with name '{name}' already exists", field="name")
    if short_name is not None:
        query = db.query(Unit.id).filter(Unit.short_name == short_name)
        if exclude_id is not None:
            query = query.filter(Unit.id != exclude_id)
        if query.first():
            raise ValidationError(f"Unit with short name '{short_name}' already exists", field="short_name")


def _check_circular_reference(db: Session, unit_id: int, base_unit_id: int) -> None:
    """Walk up from the proposed base unit; meeting ``unit_id`` means a cycle."""
    current_id = base_unit_id
    visited = set()
    while current_id is not None:
        if current_id == unit_id:
            raise CircularReferenceError("Unit", unit_id, base_unit_id)
        if current_id in visited:
            # Pre-existing loop above us, still not a valid chain
            raise CircularReferenceError("Unit", unit_id, base_unit_id)
        visited.add(current_id)
        current_id = db.query(Unit.base_unit_id).filter(Unit.id == current_id).scalar()


def create_unit(db: Session, data: UnitCreate) -> Unit:
    _check_unique(db, name=data.name, short_name=data.short_name)

    if data.base_unit_id is not None:
        base_unit = get_unit_by_id(db, data.base_unit_id)
        if base_unit.type != data.type:
            raise ValidationError("Base unit must have the same type", field="base_unit_id")

    unit = Unit(
        name=data.name,
        short_name=data.short_name,
        type=data.type,
        base_unit_id=data.base_unit_id,
        conversion_factor=data.conversion_factor,
    )
    db.add(unit)
    db.commit()
    db.refresh(unit)

    logger.info("Created unit %s (%s)", unit.short_name, unit.type.value)
    return unit


def update_unit(db: Session, unit_id: int, data: UnitUpdate) -> Unit:
    unit = get_unit_by_id(db, unit_id)
    updates = data.model_dump(exclude_unset=True)

    _check_unique(db, name=updates.get("name"), short_name=updates.get("short_name"), exclude_id=unit.id)

    new_type = updates.get("type") or unit.type
    base_unit_id = updates["base_unit_id"] if "base_unit_id" in updates else unit.base_unit_id

    if "base_unit_id" in updates and base_unit_id is not None:
        _check_circular_reference(db, unit.id, base_unit_id)

    if base_unit_id is not None:
        base_unit = get_unit_by_id(db, base_unit_id)
        if base_unit.type != new_type:
            raise ValidationError("Base unit must have the same type", field="base_unit_id")

    if new_type != unit.type and any(derived.type != new_type for derived in unit.derived_units):
        raise ValidationError(
            "Cannot change the type of a unit that other units derive from", field="type"
        )

    for field, value in updates.items():
        setattr(unit, field, value)

    db.commit()
    db.refresh(unit)
    return unit


def delete_unit(db: Session, unit_id: int) -> None:
    unit = get_unit_by_id(db, unit_id)

    products_count = (
        db.query(Product).filter(Product.unit_id == unit.id, Product.active()).count()
    )
    if products_count > 0:
        raise ReferentialIntegrityError(
            f"Unit '{unit.short_name}' is used by {products_count} active product(s)",
            resource="Product",
        )

    derived_count = db.query(Unit).filter(Unit.base_unit_id == unit.id).count()
    if derived_count > 0:
        raise ReferentialIntegrityError(
            f"Unit '{unit.short_name}' is the base of {derived_count} other unit(s)",
            resource="Unit",
        )

    db.delete(unit)
    db.commit()
    logger.info("Deleted unit %s", unit_id)


def get_conversion_chain(db: Session, unit_id: int) -> List[Unit]:
    """Units from the root base unit down to ``unit_id`` (root first)."""
    chain: List[Unit] = []
    seen = set()
    current = get_unit_by_id(db, unit_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        chain.append(current)
        current = current.base_unit
    chain.reverse()
    return chain


def _factor_to_root(chain: List[Unit]) -> Decimal:
    factor = Decimal("1")
    # The root has an implicit factor of 1
    for unit in chain[1:]:
        factor *= Decimal(str(unit.conversion_factor))
    return factor


def convert_quantity(db: Session, from_unit_id: int, to_unit_id: int, quantity: Decimal) -> Decimal:
    """Convert ``quantity`` between two units of the same type.

    Factors multiply along each unit's chain, so units several levels below
    a shared root convert correctly.
    """
    quantity = Decimal(str(quantity))
    if from_unit_id == to_unit_id:
        return quantity

    from_unit = get_unit_by_id(db, from_unit_id)
    to_unit = get_unit_by_id(db, to_unit_id)
    if from_unit.type != to_unit.type:
        raise ConversionError(from_unit.short_name, to_unit.short_name)

    from_factor = _factor_to_root(get_conversion_chain(db, from_unit.id))
    to_factor = _factor_to_root(get_conversion_chain(db, to_unit.id))

    base_quantity = quantity * from_factor
    return base_quantity / to_factor


def create_default_units(db: Session) -> List[Unit]:
    """Seed the standard units. Units that already exist (by short name) are skipped."""
    created = []
    by_short_name = {unit.short_name: unit for unit in db.query(Unit).all()}

    for name, short_name, unit_type, base_short_name, factor in DEFAULT_UNITS:
        if short_name in by_short_name:
            logger.debug("Default unit %s already exists", short_name)
            continue
        base_unit = by_short_name.get(base_short_name) if base_short_name else None
        unit = Unit(
            name=name,
            short_name=short_name,
            type=unit_type,
            base_unit_id=base_unit.id if base_unit else None,
            conversion_factor=factor or Decimal("1"),
        )
        db.add(unit)
        db.flush()
        by_short_name[short_name] = unit
        created.append(unit)

    db.commit()
    if created:
        logger.info("Seeded %d default units", len(created))
    return created
