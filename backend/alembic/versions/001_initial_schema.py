"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

unit_type = sa.Enum("WEIGHT", "VOLUME", "PIECE", "LENGTH", name="unittype")
warehouse_type = sa.Enum("MAIN", "KITCHEN", "RETAIL", name="warehousetype")
document_type = sa.Enum("RECEIPT", "TRANSFER", "WRITEOFF", "INVENTORY_ADJUSTMENT", name="documenttype")
document_status = sa.Enum("DRAFT", "APPROVED", "CANCELLED", name="documentstatus")
inventory_status = sa.Enum("DRAFT", "APPROVED", name="inventorystatus")
movement_type = sa.Enum(
    "IN", "TRANSFER_IN", "TRANSFER_OUT", "WRITEOFF", "PRODUCTION_USE", name="movementtype"
)
payment_method = sa.Enum("CASH", "CARD", "TRANSFER", "MIXED", name="paymentmethod")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _active_flag():
    return sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False, index=True)


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    # Units of measure
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("short_name", sa.String(20), unique=True, nullable=False),
        sa.Column("type", unit_type, nullable=False, index=True),
        sa.Column(
            "base_unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="RESTRICT"),
            nullable=True, index=True,
        ),
        sa.Column("conversion_factor", sa.Numeric(18, 6), nullable=False),
        *_timestamps(),
    )

    # Product categories
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column(
            "parent_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        _active_flag(),
        *_timestamps(),
    )

    # Suppliers table
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("inn", sa.String(20), unique=True, nullable=True),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        _active_flag(),
        *_timestamps(),
    )

    # Warehouses table
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("type", warehouse_type, nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _active_flag(),
        *_timestamps(),
    )

    # Recipes table
    op.create_table(
        "recipes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("portion_size", sa.Numeric(10, 3), nullable=False),
        sa.Column("cooking_time", sa.Integer(), nullable=True),
        sa.Column("difficulty_level", sa.Integer(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("cost_price", sa.Numeric(14, 4), nullable=True),
        sa.Column("margin_percent", sa.Numeric(8, 2), nullable=True),
        sa.Column("selling_price", sa.Numeric(14, 2), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _active_flag(),
        *_timestamps(),
    )

    # Products table
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("article", sa.String(50), unique=True, nullable=True, index=True),
        sa.Column("barcode", sa.String(50), unique=True, nullable=True, index=True),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False, index=True),
        sa.Column(
            "recipe_id", sa.Integer(), sa.ForeignKey("recipes.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("shelf_life_days", sa.Integer(), nullable=True),
        sa.Column("storage_temperature_min", sa.Numeric(5, 1), nullable=True),
        sa.Column("storage_temperature_max", sa.Numeric(5, 1), nullable=True),
        sa.Column("storage_conditions", sa.String(500), nullable=True),
        sa.Column("description", sa.String(1000), nullable=True),
        _active_flag(),
        *_timestamps(),
    )

    # Recipe ingredients
    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "recipe_id", sa.Integer(), sa.ForeignKey("recipes.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 4), nullable=False),
        sa.Column("cost_per_unit", sa.Numeric(14, 4), nullable=True),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    # Stock documents
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("number", sa.String(50), unique=True, nullable=False, index=True),
        sa.Column("type", document_type, nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("status", document_status, nullable=False, index=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=True, index=True),
        sa.Column("warehouse_from_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True, index=True),
        sa.Column("warehouse_to_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True, index=True),
        sa.Column("total_amount", sa.Numeric(21, 7), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "document_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "document_id", sa.Integer(), sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("price", sa.Numeric(14, 4), nullable=False),
        sa.Column("total", sa.Numeric(21, 7), nullable=False),
        sa.Column("batch_number", sa.String(100), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    # Inventory counts
    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("number", sa.String(50), unique=True, nullable=False, index=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", inventory_status, nullable=False, index=True),
        sa.Column("responsible_person_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "inventory_id", sa.Integer(), sa.ForeignKey("inventories.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("expected_quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("actual_quantity", sa.Numeric(14, 3), nullable=True),
        sa.Column("price", sa.Numeric(14, 4), nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("counted_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("counted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("inventory_id", "product_id", name="uq_inventory_item_product"),
    )

    # Menus
    op.create_table(
        "menus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        _active_flag(),
        *_timestamps(),
    )

    op.create_table(
        "menu_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        _active_flag(),
        *_timestamps(),
    )

    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "menu_id", sa.Integer(), sa.ForeignKey("menus.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("menu_categories.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("cost_price", sa.Numeric(14, 4), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "warehouse_menus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column(
            "menu_id", sa.Integer(), sa.ForeignKey("menus.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("warehouse_id", "menu_id", name="uq_warehouse_menu"),
    )

    # Sales
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("number", sa.String(50), unique=True, nullable=False, index=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("cashier_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, index=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "sale_id", sa.Integer(), sa.ForeignKey("sales.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id"), nullable=False, index=True),
        sa.Column("quantity", sa.Numeric(10, 3), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        *_timestamps(),
    )

    # Production logs
    op.create_table(
        "production_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("recipe_id", sa.Integer(), sa.ForeignKey("recipes.id"), nullable=False, index=True),
        sa.Column(
            "sale_id", sa.Integer(), sa.ForeignKey("sales.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("quantity", sa.Numeric(10, 3), nullable=False),
        sa.Column("total_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("produced_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "production_log_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "production_log_id", sa.Integer(), sa.ForeignKey("production_logs.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity_used", sa.Numeric(14, 4), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 4), nullable=False),
        sa.Column("total_cost", sa.Numeric(16, 4), nullable=False),
    )

    # Stock balances
    op.create_table(
        "stock_balances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column(
            "product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("avg_price", sa.Numeric(14, 4), nullable=False),
        sa.Column("total_value", sa.Numeric(16, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("warehouse_id", "product_id", name="uq_stock_balance_warehouse_product"),
    )

    # Stock movements journal
    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("type", movement_type, nullable=False, index=True),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("price", sa.Numeric(14, 4), nullable=False),
        sa.Column("batch_number", sa.String(100), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column(
            "document_id", sa.Integer(), sa.ForeignKey("documents.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column(
            "production_log_id", sa.Integer(), sa.ForeignKey("production_logs.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_stock_movements_warehouse_product", "stock_movements", ["warehouse_id", "product_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_stock_movements_warehouse_product", table_name="stock_movements")
    op.drop_table("stock_movements")
    op.drop_table("stock_balances")
    op.drop_table("production_log_items")
    op.drop_table("production_logs")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("warehouse_menus")
    op.drop_table("menu_items")
    op.drop_table("menu_categories")
    op.drop_table("menus")
    op.drop_table("inventory_items")
    op.drop_table("inventories")
    op.drop_table("document_items")
    op.drop_table("documents")
    op.drop_table("recipe_ingredients")
    op.drop_table("products")
    op.drop_table("recipes")
    op.drop_table("warehouses")
    op.drop_table("suppliers")
    op.drop_table("categories")
    op.drop_table("units")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        payment_method, movement_type, inventory_status, document_status,
        document_type, warehouse_type, unit_type,
    ):
        enum.drop(bind, checkfirst=True)
