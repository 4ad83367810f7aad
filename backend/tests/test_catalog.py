"""Tests for categories, products, suppliers and warehouses."""

import pytest
from decimal import Decimal

from backoffice.core.exceptions import (
    CircularReferenceError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from backoffice.schemas.category import CategoryCreate, CategoryUpdate
from backoffice.schemas.product import ProductCreate, ProductFilter, ProductUpdate
from backoffice.schemas.supplier import SupplierCreate
from backoffice.schemas.warehouse import WarehouseCreate
from backoffice.services import (
    category_service,
    product_service,
    supplier_service,
    warehouse_service,
)


@pytest.fixture
def category_tree(db_session):
    """Food > Dairy > Cheese, plus a second root Drinks."""
    food = category_service.create_category(db_session, CategoryCreate(name="Food", sort_order=1))
    drinks = category_service.create_category(db_session, CategoryCreate(name="Drinks", sort_order=2))
    dairy = category_service.create_category(db_session, CategoryCreate(name="Dairy", parent_id=food.id))
    cheese = category_service.create_category(db_session, CategoryCreate(name="Cheese", parent_id=dairy.id))
    return {"food": food, "drinks": drinks, "dairy": dairy, "cheese": cheese}


class TestCategories:
    def test_tree_nests_children(self, db_session, category_tree):
        tree = category_service.get_category_tree(db_session)
        assert [node["name"] for node in tree] == ["Food", "Drinks"]
        dairy = tree[0]["children"][0]
        assert dairy["name"] == "Dairy"
        assert [c["name"] for c in dairy["children"]] == ["Cheese"]

    def test_path_is_root_first(self, db_session, category_tree):
        path = category_service.get_category_path(db_session, category_tree["cheese"].id)
        assert [c.name for c in path] == ["Food", "Dairy", "Cheese"]

    def test_duplicate_name_rejected(self, db_session, category_tree):
        with pytest.raises(ValidationError):
            category_service.create_category(db_session, CategoryCreate(name="Food"))

    def test_moving_under_descendant_is_circular(self, db_session, category_tree):
        with pytest.raises(CircularReferenceError):
            category_service.move_category(
                db_session, category_tree["food"].id, category_tree["cheese"].id
            )

    def test_parent_update_checks_cycles(self, db_session, category_tree):
        with pytest.raises(CircularReferenceError):
            category_service.update_category(
                db_session, category_tree["dairy"].id, CategoryUpdate(parent_id=category_tree["dairy"].id)
            )

    def test_move_to_root(self, db_session, category_tree):
        moved = category_service.move_category(db_session, category_tree["cheese"].id, None)
        assert moved.parent_id is None

    def test_reorder(self, db_session, category_tree):
        category_service.reorder_categories(
            db_session,
            [(category_tree["food"].id, 5), (category_tree["drinks"].id, 0)],
        )
        roots = category_service.get_category_tree(db_session)
        assert [node["name"] for node in roots] == ["Drinks", "Food"]

    def test_delete_refused_with_active_children(self, db_session, category_tree):
        with pytest.raises(ReferentialIntegrityError):
            category_service.delete_category(db_session, category_tree["dairy"].id)

    def test_delete_refused_with_active_products(self, db_session, category_tree, units):
        product_service.create_product(
            db_session,
            ProductCreate(name="Cola", unit_id=units["l"].id, category_id=category_tree["drinks"].id),
        )
        with pytest.raises(ReferentialIntegrityError):
            category_service.delete_category(db_session, category_tree["drinks"].id)

    def test_delete_is_soft(self, db_session, category_tree):
        category_service.delete_category(db_session, category_tree["cheese"].id)
        names = {c.name for c in category_service.get_categories(db_session)}
        assert "Cheese" not in names
        everything = {c.name for c in category_service.get_categories(db_session, include_inactive=True)}
        assert "Cheese" in everything


class TestProducts:
    def test_create_and_search(self, db_session, units):
        product_service.create_product(
            db_session, ProductCreate(name="Butter", article="BT-1", unit_id=units["kg"].id)
        )
        product_service.create_product(
            db_session, ProductCreate(name="Sugar", article="SG-1", unit_id=units["kg"].id)
        )
        result = product_service.get_products(db_session, ProductFilter(search="butt"))
        assert result["total"] == 1
        assert result["items"][0].name == "Butter"
        assert result["has_more"] is False

    def test_duplicate_article_rejected(self, db_session, products, units):
        with pytest.raises(ValidationError) as exc:
            product_service.create_product(
                db_session, ProductCreate(name="Other flour", article="FL-001", unit_id=units["kg"].id)
            )
        assert exc.value.field == "article"

    def test_unknown_unit_rejected(self, db_session, units):
        with pytest.raises(NotFoundError):
            product_service.create_product(db_session, ProductCreate(name="Ghost", unit_id=999))

    def test_temperature_range_checked_on_update(self, db_session, products):
        product_service.update_product(
            db_session, products["milk"].id, ProductUpdate(storage_temperature_max=Decimal("6"))
        )
        with pytest.raises(ValidationError):
            product_service.update_product(
                db_session, products["milk"].id, ProductUpdate(storage_temperature_min=Decimal("8"))
            )

    def test_temperature_range_checked_on_input(self):
        with pytest.raises(ValueError):
            ProductCreate(
                name="Fish", unit_id=1,
                storage_temperature_min=Decimal("4"), storage_temperature_max=Decimal("-2"),
            )

    def test_deactivated_products_hidden_by_default(self, db_session, products):
        product_service.deactivate_product(db_session, products["eggs"].id)
        names = {p.name for p in product_service.get_products(db_session)["items"]}
        assert "Eggs" not in names
        inactive = product_service.get_products(db_session, ProductFilter(is_active=False))
        assert [p.name for p in inactive["items"]] == ["Eggs"]

    def test_pagination_envelope(self, db_session, products):
        page = product_service.get_products(db_session, skip=0, limit=2)
        assert page["total"] == 3
        assert len(page["items"]) == 2
        assert page["has_more"] is True


class TestSuppliers:
    def test_create_and_search(self, db_session):
        supplier_service.create_supplier(db_session, SupplierCreate(name="Green Farm", inn="7701"))
        result = supplier_service.get_suppliers(db_session, search="green")
        assert result["total"] == 1

    def test_duplicate_tax_id_rejected(self, db_session):
        supplier_service.create_supplier(db_session, SupplierCreate(name="A", inn="123"))
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(db_session, SupplierCreate(name="B", inn="123"))

    def test_deactivated_hidden(self, db_session, test_supplier):
        supplier_service.deactivate_supplier(db_session, test_supplier.id)
        assert supplier_service.get_suppliers(db_session)["total"] == 0
        assert supplier_service.get_suppliers(db_session, include_inactive=True)["total"] == 1

    def test_supplier_documents(self, db_session, test_supplier, main_warehouse, products, receive):
        receive(main_warehouse, [(products["flour"], 10, 2)])
        result = supplier_service.get_supplier_documents(db_session, test_supplier.id)
        assert result["total"] == 1


class TestWarehouses:
    def test_duplicate_name_rejected(self, db_session, main_warehouse):
        with pytest.raises(ValidationError):
            warehouse_service.create_warehouse(db_session, WarehouseCreate(name="Main Store"))

    def test_deactivated_warehouse_is_not_active(self, db_session, kitchen):
        warehouse_service.deactivate_warehouse(db_session, kitchen.id)
        with pytest.raises(NotFoundError):
            warehouse_service.get_active_warehouse(db_session, kitchen.id)
        assert kitchen.id not in {w.id for w in warehouse_service.get_warehouses(db_session)}

    def test_balances_list_positive_quantities(self, db_session, main_warehouse, products, receive):
        receive(main_warehouse, [(products["flour"], 10, 2), (products["milk"], 5, 1)])
        result = warehouse_service.get_warehouse_balances(db_session, main_warehouse.id)
        assert [b.product.name for b in result["items"]] == ["Flour", "Milk"]
