"""Product catalogue."""

import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.category import Category
from backoffice.models.product import Product
from backoffice.models.recipe import Recipe
from backoffice.models.unit import Unit
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.product import ProductCreate, ProductFilter, ProductUpdate

logger = logging.getLogger(__name__)


def get_product_by_id(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .options(joinedload(Product.unit), joinedload(Product.category))
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def get_products(
    db: Session,
    filters: Optional[ProductFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    filters = filters or ProductFilter()
    query = db.query(Product).options(joinedload(Product.unit), joinedload(Product.category))

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.article.ilike(pattern),
                Product.barcode.ilike(pattern),
            )
        )
    if filters.category_id is not None:
        query = query.filter(Product.category_id == filters.category_id)
    if filters.unit_id is not None:
        query = query.filter(Product.unit_id == filters.unit_id)
    if filters.is_active is not None:
        query = query.filter(Product.is_active == filters.is_active)

    items, total = paginate_query(query.order_by(Product.name, Product.id), skip, limit)
    return paginated_response(items, total, skip, limit)


def _validate_references(db: Session, values: dict, exclude_id: Optional[int] = None) -> None:
    if values.get("unit_id") is not None:
        if not db.query(Unit.id).filter(Unit.id == values["unit_id"]).first():
            raise NotFoundError("Unit", values["unit_id"])
    if values.get("category_id") is not None:
        if not db.query(Category.id).filter(Category.id == values["category_id"]).first():
            raise NotFoundError("Category", values["category_id"])
    if values.get("recipe_id") is not None:
        if not db.query(Recipe.id).filter(Recipe.id == values["recipe_id"]).first():
            raise NotFoundError("Recipe", values["recipe_id"])

    for field in ("article", "barcode"):
        value = values.get(field)
        if not value:
            continue
        query = db.query(Product.id).filter(getattr(Product, field) == value)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise ValidationError(f"Product with {field} '{value}' already exists", field=field)


def create_product(db: Session, data: ProductCreate) -> Product:
    values = data.model_dump()
    _validate_references(db, values)

    product = Product(**values)
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
    product = get_product_by_id(db, product_id)
    updates = data.model_dump(exclude_unset=True)
    _validate_references(db, updates, exclude_id=product.id)

    low = updates.get("storage_temperature_min", product.storage_temperature_min)
    high = updates.get("storage_temperature_max", product.storage_temperature_max)
    if low is not None and high is not None and low > high:
        raise ValidationError(
            "storage_temperature_min must not exceed storage_temperature_max",
            field="storage_temperature_min",
        )

    for field, value in updates.items():
        setattr(product, field, value)

    db.commit()
    db.refresh(product)
    return product


def deactivate_product(db: Session, product_id: int) -> Product:
    """Soft delete; movements, documents and recipes keep referencing the row."""
    product = get_product_by_id(db, product_id)
    product.deactivate()
    db.commit()
    logger.info("Deactivated product %s", product.id)
    return product
