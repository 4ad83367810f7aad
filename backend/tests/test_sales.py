"""Tests for sales recording, production logging and sales reporting."""

import pytest
from datetime import datetime
from decimal import Decimal

from backoffice.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from backoffice.models.sales import PaymentMethod, ProductionLog, Sale
from backoffice.models.stock import MovementType, StockMovement
from backoffice.schemas.menu import MenuCategoryCreate, MenuItemCreate, MenuItemUpdate
from backoffice.schemas.recipe import RecipeUpdate
from backoffice.schemas.sales import (
    ProductionLogCreate,
    SaleCreate,
    SaleFilter,
    SaleItemCreate,
    SalesStatsFilter,
)
from backoffice.services import (
    menu_service,
    numbering,
    recipe_service,
    sales_service,
    stock_service,
    warehouse_service,
)


@pytest.fixture
def shop(db_session, stocked, menu):
    """Stocked main store selling the breakfast menu."""
    menu_service.assign_menu_to_warehouse(db_session, stocked.id, menu.id)
    return stocked


@pytest.fixture
def tea(db_session, menu):
    return menu_service.create_menu_item(
        db_session, MenuItemCreate(name="Tea", price=Decimal("1.20"), menu_id=menu.id)
    )


def _line(item, quantity, **kwargs):
    return SaleItemCreate(menu_item_id=item.id, quantity=Decimal(str(quantity)), **kwargs)


def _sell(db, warehouse, *lines, cashier_id=None, **kwargs):
    return sales_service.create_sale(
        db, SaleCreate(warehouse_id=warehouse.id, items=list(lines), **kwargs), cashier_id=cashier_id
    )


def _quantity(db, warehouse, product):
    return stock_service.get_available_quantity(db, warehouse.id, product.id)


class TestCreateSale:
    def test_totals_and_number(self, db_session, shop, pancake_item, tea, test_user):
        sale = _sell(
            db_session, shop,
            _line(pancake_item, 2),
            _line(tea, 3, discount_percent=Decimal("10")),
            discount_amount=Decimal("0.24"),
            payment_method=PaymentMethod.CARD,
            cashier_id=test_user.id,
        )

        assert sale.number == f"S{numbering.business_date():%Y%m%d}0001"
        assert sale.total_amount == Decimal("12.00")
        assert sale.payment_method == PaymentMethod.CARD
        assert sale.cashier_id == test_user.id
        assert [(i.price, i.total) for i in sale.items] == [
            (Decimal("4.50"), Decimal("9.00")),
            (Decimal("1.20"), Decimal("3.24")),
        ]

    def test_recipe_items_consume_ingredients(self, db_session, shop, pancake_item, tea, products):
        sale = _sell(db_session, shop, _line(pancake_item, 2), _line(tea, 1))

        (log,) = sale.production_logs
        assert log.quantity == Decimal("2")
        # 4 kg flour at 2.00, 2 l milk at 1.50 and 10 eggs at 0.20
        assert log.total_cost == Decimal("13")

        assert _quantity(db_session, shop, products["flour"]) == Decimal("6")
        assert _quantity(db_session, shop, products["milk"]) == Decimal("18")
        assert _quantity(db_session, shop, products["eggs"]) == Decimal("50")

        movements = db_session.query(StockMovement).filter(StockMovement.production_log_id == log.id).all()
        assert len(movements) == 3
        assert {m.type for m in movements} == {MovementType.PRODUCTION_USE}

    def test_deactivated_recipe_still_consumes_ingredients(self, db_session, shop, pancake_item, pancakes, products):
        recipe_service.delete_recipe(db_session, pancakes.id)

        sale = _sell(db_session, shop, _line(pancake_item, 1))

        assert len(sale.production_logs) == 1
        assert sale.production_logs[0].recipe_id == pancakes.id
        assert _quantity(db_session, shop, products["flour"]) == Decimal("8")

    def test_shortage_rolls_back_everything(self, db_session, shop, pancake_item, tea, products):
        with pytest.raises(InsufficientStockError) as exc:
            _sell(db_session, shop, _line(tea, 1), _line(pancake_item, 6))

        assert exc.value.product_name == "Flour"
        assert exc.value.required == Decimal("12")
        assert db_session.query(Sale).count() == 0
        assert db_session.query(ProductionLog).count() == 0
        assert _quantity(db_session, shop, products["flour"]) == Decimal("10")

    def test_explicit_price_overrides_menu_price(self, db_session, shop, tea):
        sale = _sell(db_session, shop, _line(tea, 2, price=Decimal("2")))
        assert sale.total_amount == Decimal("4.00")

    def test_numbers_are_sequential(self, db_session, shop, tea):
        _sell(db_session, shop, _line(tea, 1))
        second = _sell(db_session, shop, _line(tea, 1))
        assert second.number.endswith("0002")

    def test_unavailable_item_rejected(self, db_session, shop, pancake_item, tea):
        menu_service.update_menu_item(db_session, pancake_item.id, MenuItemUpdate(is_available=False))
        with pytest.raises(ValidationError) as exc:
            _sell(db_session, shop, _line(tea, 1), _line(pancake_item, 1), _line(tea, 2))
        assert exc.value.details["menu_item_ids"] == [pancake_item.id]

    def test_item_from_menu_not_sold_at_warehouse(self, db_session, kitchen, tea):
        with pytest.raises(ValidationError):
            _sell(db_session, kitchen, _line(tea, 1))

    def test_inactive_warehouse(self, db_session, kitchen, tea):
        warehouse_service.deactivate_warehouse(db_session, kitchen.id)
        with pytest.raises(NotFoundError):
            _sell(db_session, kitchen, _line(tea, 1))

    def test_discount_cannot_exceed_total(self, db_session, shop, tea):
        with pytest.raises(ValidationError) as exc:
            _sell(db_session, shop, _line(tea, 1), discount_amount=Decimal("5"))
        assert exc.value.field == "discount_amount"

    def test_list_filters(self, db_session, shop, tea, test_user):
        _sell(db_session, shop, _line(tea, 1), cashier_id=test_user.id)
        _sell(db_session, shop, _line(tea, 1))

        assert sales_service.get_sales(db_session)["total"] == 2
        mine = sales_service.get_sales(db_session, SaleFilter(cashier_id=test_user.id))
        assert mine["total"] == 1
        card = sales_service.get_sales(db_session, SaleFilter(payment_method=PaymentMethod.CARD))
        assert card["total"] == 0


class TestProductionLog:
    def test_costs_at_average_price(self, db_session, stocked, pancakes, products, test_user):
        log = sales_service.create_production_log(
            db_session,
            ProductionLogCreate(warehouse_id=stocked.id, recipe_id=pancakes.id, quantity=Decimal("1")),
            created_by_id=test_user.id,
        )
        # Eggs are costed at their 0.20 average, not the recipe's 0.30
        assert log.total_cost == Decimal("6.5")
        assert log.sale_id is None
        flour = next(i for i in log.items if i.product_id == products["flour"].id)
        assert flour.quantity_used == Decimal("2")
        assert flour.unit_price == Decimal("2")
        assert _quantity(db_session, stocked, products["flour"]) == Decimal("8")

    def test_inactive_recipe(self, db_session, stocked, pancakes):
        recipe_service.update_recipe(db_session, pancakes.id, RecipeUpdate(is_active=False))
        with pytest.raises(NotFoundError):
            sales_service.create_production_log(
                db_session,
                ProductionLogCreate(warehouse_id=stocked.id, recipe_id=pancakes.id, quantity=Decimal("1")),
            )

    def test_empty_warehouse(self, db_session, kitchen, pancakes):
        with pytest.raises(InsufficientStockError):
            sales_service.create_production_log(
                db_session,
                ProductionLogCreate(warehouse_id=kitchen.id, recipe_id=pancakes.id, quantity=Decimal("1")),
            )
        assert db_session.query(ProductionLog).count() == 0

    def test_list(self, db_session, stocked, pancakes):
        for _ in range(2):
            sales_service.create_production_log(
                db_session,
                ProductionLogCreate(warehouse_id=stocked.id, recipe_id=pancakes.id, quantity=Decimal("1")),
            )
        assert sales_service.get_production_logs(db_session, recipe_id=pancakes.id)["total"] == 2
        assert sales_service.get_production_logs(db_session, warehouse_id=stocked.id + 1)["total"] == 0


class TestSalesStats:
    @pytest.fixture
    def history(self, db_session, main_warehouse, test_user):
        """Four sales: Sun 1 Mar, Wed 4 Mar, Sun 8 Mar and Thu 2 Apr 2026."""
        rows = [
            (datetime(2026, 3, 1, 10), "10.00", test_user.id),
            (datetime(2026, 3, 4, 12), "5.00", None),
            (datetime(2026, 3, 8, 9), "20.00", test_user.id),
            (datetime(2026, 4, 2, 18), "7.50", None),
        ]
        for index, (when, total, cashier_id) in enumerate(rows, start=1):
            db_session.add(Sale(
                number=f"S2026TEST{index:04d}",
                warehouse_id=main_warehouse.id,
                date=when,
                total_amount=Decimal(total),
                cashier_id=cashier_id,
            ))
        db_session.commit()

    def _stats(self, db, group_by, **kwargs):
        return sales_service.get_sales_stats(db, SalesStatsFilter(group_by=group_by, **kwargs))

    def test_by_day(self, db_session, history):
        stats = self._stats(db_session, "day")
        assert [s["period"] for s in stats] == ["2026-03-01", "2026-03-04", "2026-03-08", "2026-04-02"]

    def test_by_week_starting_sunday(self, db_session, history):
        stats = self._stats(db_session, "week")
        assert [(s["period"], s["sales_count"]) for s in stats] == [
            ("2026-03-01", 2),
            ("2026-03-08", 1),
            ("2026-03-29", 1),
        ]
        assert stats[0]["total_amount"] == Decimal("15.00")

    def test_by_month_with_date_range(self, db_session, history):
        stats = self._stats(db_session, "month")
        assert [(s["period"], s["total_amount"]) for s in stats] == [
            ("2026-03", Decimal("35.00")),
            ("2026-04", Decimal("7.50")),
        ]

        march = self._stats(
            db_session, "month", date_from=datetime(2026, 3, 2), date_to=datetime(2026, 3, 31)
        )
        assert [(s["period"], s["sales_count"]) for s in march] == [("2026-03", 2)]

    def test_by_cashier(self, db_session, history, test_user):
        stats = self._stats(db_session, "cashier")
        assert [(s["cashier_name"], s["total_amount"]) for s in stats] == [
            ("Test User", Decimal("30.00")),
            ("Unknown", Decimal("12.50")),
        ]
        assert stats[0]["cashier_id"] == test_user.id

    def test_by_menu_item(self, db_session, shop, pancake_item, tea):
        _sell(db_session, shop, _line(pancake_item, 1), _line(tea, 2))
        _sell(db_session, shop, _line(tea, 1))

        stats = self._stats(db_session, "menu_item")
        assert [(s["menu_item_name"], s["total_quantity"], s["total_amount"], s["sales_count"]) for s in stats] == [
            ("Pancakes", Decimal("1"), Decimal("4.50"), 1),
            ("Tea", Decimal("3"), Decimal("3.60"), 2),
        ]

    def test_unknown_grouping(self, db_session):
        with pytest.raises(ValidationError) as exc:
            self._stats(db_session, "year")
        assert exc.value.field == "group_by"


class TestAvailableMenu:
    @pytest.fixture
    def categorised(self, db_session, menu, pancake_item, tea):
        mains = menu_service.create_menu_category(db_session, MenuCategoryCreate(name="Mains", sort_order=1))
        drinks = menu_service.create_menu_category(db_session, MenuCategoryCreate(name="Drinks", sort_order=2))
        menu_service.update_menu_item(db_session, pancake_item.id, MenuItemUpdate(category_id=mains.id))
        menu_service.update_menu_item(db_session, tea.id, MenuItemUpdate(category_id=drinks.id))
        menu_service.create_menu_item(
            db_session, MenuItemCreate(name="Coffee", price=Decimal("1.80"), menu_id=menu.id)
        )

    def test_grouped_with_uncategorized_last(self, db_session, shop, categorised):
        groups = sales_service.get_available_menu_for_warehouse(db_session, shop.id)
        assert [g["name"] for g in groups] == ["Mains", "Drinks", "Uncategorized"]
        assert groups[-1]["id"] is None
        assert groups[-1]["sort_order"] == 999

        (pancakes,) = groups[0]["items"]
        assert pancakes["is_available"] is True
        assert pancakes["availability"]["max_portions"] == 5
        assert groups[1]["items"][0]["availability"] is None

    def test_no_stock_marks_recipe_items_unavailable(self, db_session, kitchen, menu, categorised):
        menu_service.assign_menu_to_warehouse(db_session, kitchen.id, menu.id)
        groups = sales_service.get_available_menu_for_warehouse(db_session, kitchen.id)

        (pancakes,) = groups[0]["items"]
        assert pancakes["is_available"] is False
        assert groups[1]["items"][0]["is_available"] is True

    def test_no_active_menus(self, db_session, main_warehouse, categorised):
        assert sales_service.get_available_menu_for_warehouse(db_session, main_warehouse.id) == []

    def test_unavailable_items_are_hidden(self, db_session, shop, tea):
        menu_service.update_menu_item(db_session, tea.id, MenuItemUpdate(is_available=False))
        groups = sales_service.get_available_menu_for_warehouse(db_session, shop.id)
        assert groups == []
