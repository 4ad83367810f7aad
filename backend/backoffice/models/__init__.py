"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from backoffice.models.user import User
from backoffice.models.unit import Unit, UnitType
from backoffice.models.category import Category
from backoffice.models.supplier import Supplier
from backoffice.models.warehouse import Warehouse, WarehouseType
from backoffice.models.product import Product
from backoffice.models.stock import MovementType, StockBalance, StockMovement
from backoffice.models.document import Document, DocumentItem, DocumentStatus, DocumentType
from backoffice.models.inventory import Inventory, InventoryItem, InventoryStatus
from backoffice.models.recipe import Recipe, RecipeIngredient
from backoffice.models.menu import Menu, MenuCategory, MenuItem, WarehouseMenu
from backoffice.models.sales import (
    PaymentMethod,
    ProductionLog,
    ProductionLogItem,
    Sale,
    SaleItem,
)

__all__ = [
    "User",
    "Unit",
    "UnitType",
    "Category",
    "Supplier",
    "Warehouse",
    "WarehouseType",
    "Product",
    "MovementType",
    "StockBalance",
    "StockMovement",
    "Document",
    "DocumentItem",
    "DocumentStatus",
    "DocumentType",
    "Inventory",
    "InventoryItem",
    "InventoryStatus",
    "Recipe",
    "RecipeIngredient",
    "Menu",
    "MenuCategory",
    "MenuItem",
    "WarehouseMenu",
    "PaymentMethod",
    "ProductionLog",
    "ProductionLogItem",
    "Sale",
    "SaleItem",
]
