"""Tests for the stock ledger: balances, average price and the movement journal."""

import pytest
from decimal import Decimal

from backoffice.models.stock import MovementType, StockBalance, StockMovement
from backoffice.schemas.stock import MovementFilter
from backoffice.services import stock_service


def _post(db, warehouse, product, movement_type, quantity, price="0"):
    balance = stock_service.apply_movement(
        db,
        StockMovement(
            warehouse_id=warehouse.id,
            product_id=product.id,
            type=movement_type,
            quantity=Decimal(str(quantity)),
            price=Decimal(str(price)),
        ),
    )
    db.commit()
    return balance


class TestApplyMovement:
    def test_first_receipt_creates_balance(self, db_session, main_warehouse, products):
        balance = _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, "2.50")
        assert balance.quantity == Decimal("10")
        assert balance.avg_price == Decimal("2.5")
        assert balance.total_value == Decimal("25.00")

    def test_incoming_stock_averages_price(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 2)
        balance = _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 4)
        assert balance.quantity == Decimal("20")
        assert balance.avg_price == Decimal("3")
        assert balance.total_value == Decimal("60.00")

    def test_outgoing_stock_keeps_average(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 3)
        balance = _post(db_session, main_warehouse, products["flour"], MovementType.WRITEOFF, -4)
        assert balance.quantity == Decimal("6")
        assert balance.avg_price == Decimal("3")
        assert balance.total_value == Decimal("18.00")

    def test_negative_stock_does_not_weigh_on_average(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["milk"], MovementType.IN, 2, 1)
        _post(db_session, main_warehouse, products["milk"], MovementType.WRITEOFF, -5)
        balance = _post(db_session, main_warehouse, products["milk"], MovementType.IN, 10, 2)
        assert balance.quantity == Decimal("7")
        assert balance.avg_price == Decimal("2")
        assert balance.total_value == Decimal("14.00")

    def test_outgoing_without_balance_goes_negative(self, db_session, main_warehouse, products):
        balance = _post(db_session, main_warehouse, products["eggs"], MovementType.WRITEOFF, -3)
        assert balance.quantity == Decimal("-3")
        assert balance.avg_price == Decimal("0")

    def test_one_balance_per_warehouse_and_product(self, db_session, main_warehouse, kitchen, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 1, 1)
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 1, 1)
        _post(db_session, kitchen, products["flour"], MovementType.IN, 1, 1)
        assert db_session.query(StockBalance).count() == 2


class TestRecalculateBalance:
    def test_replays_remaining_movements(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 2)
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 4)
        last = db_session.query(StockMovement).order_by(StockMovement.id.desc()).first()
        db_session.delete(last)

        balance = stock_service.recalculate_balance(db_session, main_warehouse.id, products["flour"].id)
        db_session.commit()
        assert balance.quantity == Decimal("10")
        assert balance.avg_price == Decimal("2")

    def test_removes_balance_without_movements(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 10, 2)
        db_session.query(StockMovement).delete()

        assert stock_service.recalculate_balance(db_session, main_warehouse.id, products["flour"].id) is None
        db_session.commit()
        assert stock_service.get_balance(db_session, main_warehouse.id, products["flour"].id) is None


class TestQueries:
    def test_available_quantity_defaults_to_zero(self, db_session, main_warehouse, products):
        assert stock_service.get_available_quantity(
            db_session, main_warehouse.id, products["flour"].id
        ) == Decimal("0")

    def test_latest_avg_price(self, db_session, main_warehouse, products):
        assert stock_service.get_latest_avg_price(db_session, products["flour"].id) == Decimal("0")
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 4, "1.25")
        assert stock_service.get_latest_avg_price(db_session, products["flour"].id) == Decimal("1.25")

    def test_list_balances_skips_zero(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 4, 1)
        _post(db_session, main_warehouse, products["milk"], MovementType.IN, 2, 1)
        _post(db_session, main_warehouse, products["milk"], MovementType.WRITEOFF, -2)

        names = [b.product.name for b in stock_service.list_balances(db_session, warehouse_id=main_warehouse.id)]
        assert names == ["Flour"]
        with_zero = stock_service.list_balances(db_session, warehouse_id=main_warehouse.id, include_zero=True)
        assert len(with_zero) == 2

    def test_list_movements_filters_and_paginates(self, db_session, main_warehouse, products):
        for _ in range(3):
            _post(db_session, main_warehouse, products["flour"], MovementType.IN, 1, 1)
        _post(db_session, main_warehouse, products["flour"], MovementType.WRITEOFF, -1)

        page = stock_service.list_movements(
            db_session, MovementFilter(type=MovementType.IN), skip=0, limit=2
        )
        assert page["total"] == 3
        assert len(page["items"]) == 2
        assert page["has_more"] is True

    def test_low_stock(self, db_session, main_warehouse, products):
        _post(db_session, main_warehouse, products["flour"], MovementType.IN, 3, 1)
        _post(db_session, main_warehouse, products["milk"], MovementType.IN, 50, 1)

        low = stock_service.get_low_stock_items(db_session, threshold=Decimal("5"))
        assert [b.product.name for b in low] == ["Flour"]
