"""Tests for menus, warehouse assignment and menu item availability."""

import pytest
from decimal import Decimal

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.schemas.menu import (
    MenuCategoryCreate,
    MenuItemCreate,
    MenuItemUpdate,
    MenuUpdate,
)
from backoffice.services import menu_service


class TestMenus:
    def test_update_and_soft_delete(self, db_session, menu):
        menu_service.update_menu(db_session, menu.id, MenuUpdate(description="Until noon"))
        assert menu_service.get_menu_by_id(db_session, menu.id).description == "Until noon"

        menu_service.delete_menu(db_session, menu.id)
        assert menu_service.get_menus(db_session) == []
        assert len(menu_service.get_menus(db_session, include_inactive=True)) == 1

    def test_categories_ordered(self, db_session):
        menu_service.create_menu_category(db_session, MenuCategoryCreate(name="Desserts", sort_order=2))
        menu_service.create_menu_category(db_session, MenuCategoryCreate(name="Mains", sort_order=1))
        assert [c.name for c in menu_service.get_menu_categories(db_session)] == ["Mains", "Desserts"]


class TestMenuItems:
    def test_unknown_references_rejected(self, db_session, menu):
        with pytest.raises(NotFoundError):
            menu_service.create_menu_item(
                db_session, MenuItemCreate(name="Tea", price=Decimal("1"), menu_id=999)
            )
        with pytest.raises(NotFoundError):
            menu_service.create_menu_item(
                db_session, MenuItemCreate(name="Tea", price=Decimal("1"), category_id=999)
            )

    def test_list_by_menu_hides_inactive(self, db_session, menu):
        tea = menu_service.create_menu_item(
            db_session, MenuItemCreate(name="Tea", price=Decimal("1.20"), menu_id=menu.id)
        )
        menu_service.create_menu_item(
            db_session, MenuItemCreate(name="Coffee", price=Decimal("1.80"), menu_id=menu.id)
        )
        menu_service.update_menu_item(db_session, tea.id, MenuItemUpdate(is_active=False))

        assert [i.name for i in menu_service.get_menu_items(db_session, menu_id=menu.id)] == ["Coffee"]
        assert len(menu_service.get_menu_items(db_session, menu_id=menu.id, include_inactive=True)) == 2


class TestWarehouseMenus:
    def test_assignment_drives_active_menus(self, db_session, main_warehouse, menu):
        menu_service.assign_menu_to_warehouse(db_session, main_warehouse.id, menu.id)
        assert menu_service.get_active_menu_ids(db_session, main_warehouse.id) == [menu.id]

        menu_service.set_warehouse_menu_active(db_session, main_warehouse.id, menu.id, False)
        assert menu_service.get_active_menu_ids(db_session, main_warehouse.id) == []

    def test_reassigning_reactivates(self, db_session, main_warehouse, menu):
        menu_service.assign_menu_to_warehouse(db_session, main_warehouse.id, menu.id)
        menu_service.set_warehouse_menu_active(db_session, main_warehouse.id, menu.id, False)

        link = menu_service.assign_menu_to_warehouse(db_session, main_warehouse.id, menu.id)
        assert link.is_active is True
        assert len(menu_service.get_warehouse_menus(db_session, main_warehouse.id)) == 1

    def test_inactive_menu_is_not_active_anywhere(self, db_session, main_warehouse, menu):
        menu_service.assign_menu_to_warehouse(db_session, main_warehouse.id, menu.id)
        menu_service.delete_menu(db_session, menu.id)
        assert menu_service.get_active_menu_ids(db_session, main_warehouse.id) == []

    def test_remove(self, db_session, main_warehouse, menu):
        menu_service.assign_menu_to_warehouse(db_session, main_warehouse.id, menu.id)
        menu_service.remove_warehouse_menu(db_session, main_warehouse.id, menu.id)
        assert menu_service.get_warehouse_menus(db_session, main_warehouse.id) == []
        with pytest.raises(NotFoundError):
            menu_service.remove_warehouse_menu(db_session, main_warehouse.id, menu.id)

    def test_unknown_warehouse(self, db_session, menu):
        with pytest.raises(NotFoundError):
            menu_service.assign_menu_to_warehouse(db_session, 999, menu.id)


class TestAvailability:
    def test_recipe_portions_floor_per_ingredient(self, db_session, pancakes, stocked, products):
        portions = menu_service.recipe_portions(db_session, pancakes, stocked.id)
        by_product = {row["product_id"]: row["max_portions"] for row in portions["ingredients"]}
        # 10 kg / 2, 20 l / 1, 60 eggs / 5
        assert by_product == {
            products["flour"].id: 5,
            products["milk"].id: 20,
            products["eggs"].id: 12,
        }
        assert portions["max_portions"] == 5

    def test_empty_warehouse_allows_no_portions(self, db_session, pancakes, kitchen):
        assert menu_service.recipe_portions(db_session, pancakes, kitchen.id)["max_portions"] == 0

    def test_menu_item_availability(self, db_session, pancake_item, stocked):
        result = menu_service.check_menu_item_availability(db_session, pancake_item.id, stocked.id)
        assert result["available"] is True
        assert result["max_portions"] == 5

        result = menu_service.check_menu_item_availability(
            db_session, pancake_item.id, stocked.id, quantity=Decimal("6")
        )
        assert result["available"] is False
        assert result["reason"] == "Insufficient ingredients"
        insufficient = [row["product_name"] for row in result["ingredients"] if not row["sufficient"]]
        assert insufficient == ["Flour"]

    def test_item_without_recipe_is_available(self, db_session, menu, stocked):
        tea = menu_service.create_menu_item(
            db_session, MenuItemCreate(name="Tea", price=Decimal("1"), menu_id=menu.id)
        )
        result = menu_service.check_menu_item_availability(db_session, tea.id, stocked.id)
        assert result["available"] is True
        assert result["max_portions"] is None

    def test_unavailable_flag_wins(self, db_session, pancake_item, stocked):
        menu_service.update_menu_item(db_session, pancake_item.id, MenuItemUpdate(is_available=False))
        result = menu_service.check_menu_item_availability(db_session, pancake_item.id, stocked.id)
        assert result["available"] is False
        assert result["max_portions"] == 0

    def test_quantity_must_be_positive(self, db_session, pancake_item, stocked):
        with pytest.raises(ValidationError):
            menu_service.check_menu_item_availability(
                db_session, pancake_item.id, stocked.id, quantity=Decimal("0")
            )
