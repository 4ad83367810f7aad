"""Tests for units of measure and quantity conversion."""

import pytest
from decimal import Decimal

from backoffice.core.exceptions import (
    CircularReferenceError,
    ConversionError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from backoffice.models.unit import UnitType
from backoffice.schemas.unit import UnitCreate, UnitUpdate
from backoffice.services import unit_service


class TestDefaultUnits:
    def test_seeds_standard_units(self, db_session, units):
        assert {"kg", "g", "l", "ml", "pcs", "pack", "m", "cm"} <= set(units)
        assert units["g"].base_unit_id == units["kg"].id
        assert units["g"].conversion_factor == Decimal("0.001")
        assert units["kg"].base_unit_id is None

    def test_seeding_twice_creates_nothing(self, db_session, units):
        created = unit_service.create_default_units(db_session)
        assert created == []
        assert len(unit_service.get_units(db_session)) == len(units)

    def test_base_units_and_by_type(self, db_session, units):
        base = {u.short_name for u in unit_service.get_base_units(db_session)}
        assert "kg" in base and "g" not in base

        weights = {u.short_name for u in unit_service.get_units_by_type(db_session, UnitType.WEIGHT)}
        assert weights == {"kg", "g"}


class TestConversion:
    def test_same_unit_returns_quantity(self, db_session, units):
        assert unit_service.convert_quantity(
            db_session, units["kg"].id, units["kg"].id, Decimal("2.5")
        ) == Decimal("2.5")

    def test_derived_to_base(self, db_session, units):
        result = unit_service.convert_quantity(db_session, units["g"].id, units["kg"].id, Decimal("500"))
        assert result == Decimal("0.5")

    def test_base_to_derived(self, db_session, units):
        result = unit_service.convert_quantity(db_session, units["kg"].id, units["g"].id, Decimal("2"))
        assert result == Decimal("2000")

    def test_siblings_convert_through_shared_root(self, db_session, units):
        mg = unit_service.create_unit(
            db_session,
            UnitCreate(
                name="Milligram", short_name="mg", type=UnitType.WEIGHT,
                base_unit_id=units["kg"].id, conversion_factor=Decimal("0.000001"),
            ),
        )
        result = unit_service.convert_quantity(db_session, units["g"].id, mg.id, Decimal("3"))
        assert result == Decimal("3000")

    def test_two_level_chain_multiplies_factors(self, db_session, units):
        dozen = unit_service.create_unit(
            db_session,
            UnitCreate(
                name="Dozen", short_name="dz", type=UnitType.PIECE,
                base_unit_id=units["pcs"].id, conversion_factor=Decimal("12"),
            ),
        )
        crate = unit_service.create_unit(
            db_session,
            UnitCreate(
                name="Crate", short_name="crate", type=UnitType.PIECE,
                base_unit_id=dozen.id, conversion_factor=Decimal("30"),
            ),
        )
        assert unit_service.convert_quantity(
            db_session, crate.id, units["pcs"].id, Decimal("1")
        ) == Decimal("360")

    def test_incompatible_types_raise(self, db_session, units):
        with pytest.raises(ConversionError) as exc:
            unit_service.convert_quantity(db_session, units["kg"].id, units["l"].id, Decimal("1"))
        assert exc.value.from_unit == "kg"
        assert exc.value.to_unit == "l"

    def test_conversion_chain_is_root_first(self, db_session, units):
        chain = unit_service.get_conversion_chain(db_session, units["g"].id)
        assert [u.short_name for u in chain] == ["kg", "g"]


class TestUnitCrud:
    def test_duplicate_short_name_rejected(self, db_session, units):
        with pytest.raises(ValidationError):
            unit_service.create_unit(
                db_session, UnitCreate(name="Kilo", short_name="kg", type=UnitType.WEIGHT)
            )

    def test_base_unit_must_share_type(self, db_session, units):
        with pytest.raises(ValidationError):
            unit_service.create_unit(
                db_session,
                UnitCreate(
                    name="Cup", short_name="cup", type=UnitType.VOLUME,
                    base_unit_id=units["kg"].id, conversion_factor=Decimal("0.25"),
                ),
            )

    def test_self_reference_rejected(self, db_session, units):
        with pytest.raises(CircularReferenceError):
            unit_service.update_unit(db_session, units["kg"].id, UnitUpdate(base_unit_id=units["kg"].id))

    def test_cycle_rejected(self, db_session, units):
        with pytest.raises(CircularReferenceError):
            unit_service.update_unit(db_session, units["kg"].id, UnitUpdate(base_unit_id=units["g"].id))

    def test_missing_unit(self, db_session):
        with pytest.raises(NotFoundError):
            unit_service.get_unit_by_id(db_session, 999)

    def test_delete_refused_while_used_by_product(self, db_session, units, products):
        with pytest.raises(ReferentialIntegrityError):
            unit_service.delete_unit(db_session, units["pcs"].id)

    def test_delete_refused_while_other_units_derive(self, db_session, units):
        with pytest.raises(ReferentialIntegrityError):
            unit_service.delete_unit(db_session, units["m"].id)

    def test_delete_unused_unit(self, db_session, units):
        cm_id = units["cm"].id
        unit_service.delete_unit(db_session, cm_id)
        with pytest.raises(NotFoundError):
            unit_service.get_unit_by_id(db_session, cm_id)
