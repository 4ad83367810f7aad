"""Product category tree."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from backoffice.core.exceptions import (
    CircularReferenceError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from backoffice.models.category import Category
from backoffice.models.product import Product
from backoffice.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def get_category_by_id(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category", category_id)
    return category


def get_categories(db: Session, include_inactive: bool = False) -> List[Category]:
    query = db.query(Category)
    if not include_inactive:
        query = query.filter(Category.active())
    return query.order_by(Category.sort_order, Category.name).all()


def get_category_tree(db: Session, include_inactive: bool = False) -> List[Dict[str, Any]]:
    """Nested dicts of the category tree, roots first, siblings by sort order then name."""
    categories = get_categories(db, include_inactive)

    nodes = {
        category.id: {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "parent_id": category.parent_id,
            "sort_order": category.sort_order,
            "is_active": category.is_active,
            "children": [],
        }
        for category in categories
    }

    roots = []
    for category in categories:
        node = nodes[category.id]
        if category.parent_id is None:
            roots.append(node)
        elif category.parent_id in nodes:
            nodes[category.parent_id]["children"].append(node)
        # Children of filtered-out parents are dropped from the tree

    return roots


def get_category_path(db: Session, category_id: int) -> List[Category]:
    """Ancestors of the category and the category itself, root first."""
    path: List[Category] = []
    seen = set()
    current: Optional[Category] = get_category_by_id(db, category_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        path.append(current)
        current = current.parent
    path.reverse()
    return path


def _check_circular_reference(db: Session, category_id: int, parent_id: int) -> None:
    current_id = parent_id
    visited = set()
    while current_id is not None:
        if current_id == category_id or current_id in visited:
            raise CircularReferenceError("Category", category_id, parent_id)
        visited.add(current_id)
        current_id = db.query(Category.parent_id).filter(Category.id == current_id).scalar()


def _check_name_unique(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ValidationError(f"Category '{name}' already exists", field="name")


def create_category(db: Session, data: CategoryCreate) -> Category:
    _check_name_unique(db, data.name)
    if data.parent_id is not None:
        get_category_by_id(db, data.parent_id)

    category = Category(**data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info("Created category %s (parent=%s)", category.name, category.parent_id)
    return category


def update_category(db: Session, category_id: int, data: CategoryUpdate) -> Category:
    category = get_category_by_id(db, category_id)
    updates = data.model_dump(exclude_unset=True)

    if updates.get("name") is not None:
        _check_name_unique(db, updates["name"], exclude_id=category.id)

    if updates.get("parent_id") is not None:
        get_category_by_id(db, updates["parent_id"])
        _check_circular_reference(db, category.id, updates["parent_id"])

    for field, value in updates.items():
        setattr(category, field, value)

    db.commit()
    db.refresh(category)
    return category


def move_category(db: Session, category_id: int, new_parent_id: Optional[int]) -> Category:
    """Re-parent a category. ``None`` makes it a root."""
    category = get_category_by_id(db, category_id)
    if new_parent_id is not None:
        get_category_by_id(db, new_parent_id)
        _check_circular_reference(db, category.id, new_parent_id)

    category.parent_id = new_parent_id
    db.commit()
    db.refresh(category)

    logger.info("Moved category %s under %s", category.id, new_parent_id)
    return category


def reorder_categories(db: Session, orders: Iterable[Tuple[int, int]]) -> None:
    """Apply ``(category_id, sort_order)`` pairs in one transaction."""
    try:
        for category_id, sort_order in orders:
            category = get_category_by_id(db, category_id)
            category.sort_order = sort_order
        db.commit()
    except Exception:
        db.rollback()
        raise


def delete_category(db: Session, category_id: int) -> None:
    """Soft delete. Refused while active subcategories or products remain."""
    category = get_category_by_id(db, category_id)

    children_count = (
        db.query(Category)
        .filter(Category.parent_id == category.id, Category.active())
        .count()
    )
    if children_count > 0:
        raise ReferentialIntegrityError(
            f"Category '{category.name}' has {children_count} active subcategories",
            resource="Category",
        )

    products_count = (
        db.query(Product)
        .filter(Product.category_id == category.id, Product.active())
        .count()
    )
    if products_count > 0:
        raise ReferentialIntegrityError(
            f"Category '{category.name}' has {products_count} active products",
            resource="Product",
        )

    category.deactivate()
    db.commit()
    logger.info("Deactivated category %s", category.id)
