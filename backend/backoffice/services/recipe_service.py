"""Recipe costing.

A recipe is costed for the batch its ingredient list describes. Each
ingredient's unit cost is its explicit ``cost_per_unit`` when non-zero,
otherwise the average price of the most recently updated stock balance of
the product (zero when the product has never been stocked).

Ingredient quantities are used as entered. When the ingredient's unit is
not the product's own unit no conversion is applied; a warning is logged
for each such line.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.product import Product
from backoffice.models.recipe import Recipe, RecipeIngredient
from backoffice.models.unit import Unit
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.recipe import (
    RecipeCreate,
    RecipeFilter,
    RecipeIngredientCreate,
    RecipeUpdate,
)
from backoffice.services import stock_service

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
COST_PRECISION = Decimal("0.0001")
MONEY_PRECISION = Decimal("0.01")


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def selling_price_for(cost_price: Decimal, margin_percent: Decimal) -> Decimal:
    """``cost * (1 + margin / 100)`` rounded to cents."""
    price = _dec(cost_price) * (1 + _dec(margin_percent) / 100)
    return price.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


# ============== Costing ==============

def _cost_lines(db: Session, ingredients: Iterable, scale: Decimal = Decimal("1")) -> Dict[str, Any]:
    """Cost ingredient-like objects (schema or model rows) scaled by ``scale``."""
    lines = []
    total = ZERO
    for ingredient in ingredients:
        product = db.query(Product).filter(Product.id == ingredient.product_id).first()
        if not product:
            raise NotFoundError("Product", ingredient.product_id)

        if ingredient.unit_id != product.unit_id:
            logger.warning(
                "Recipe ingredient '%s' is in unit %s but the product is stocked in unit %s; "
                "quantity used without conversion",
                product.name, ingredient.unit_id, product.unit_id,
            )

        explicit_cost = ingredient.cost_per_unit
        if explicit_cost is not None and _dec(explicit_cost) != 0:
            unit_cost = _dec(explicit_cost)
        else:
            unit_cost = stock_service.get_latest_avg_price(db, product.id)

        quantity = _dec(ingredient.quantity) * scale
        line_cost = quantity * unit_cost
        total += line_cost
        lines.append({
            "product_id": product.id,
            "product_name": product.name,
            "quantity": quantity,
            "unit_id": ingredient.unit_id,
            "unit_cost": unit_cost,
            "line_cost": line_cost,
        })

    total = total.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)
    return {"total_cost": total, "cost_per_portion": total, "ingredients": lines}


def calculate_recipe_cost(db: Session, ingredients: List[RecipeIngredientCreate]) -> Dict[str, Any]:
    """Cost an ingredient list without persisting anything."""
    return _cost_lines(db, ingredients)


# ============== Queries ==============

def get_recipe_by_id(db: Session, recipe_id: int) -> Recipe:
    recipe = (
        db.query(Recipe)
        .options(
            joinedload(Recipe.ingredients).joinedload(RecipeIngredient.product),
            joinedload(Recipe.ingredients).joinedload(RecipeIngredient.unit),
        )
        .filter(Recipe.id == recipe_id)
        .first()
    )
    if not recipe:
        raise NotFoundError("Recipe", recipe_id)
    return recipe


def get_recipes(
    db: Session,
    filters: Optional[RecipeFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    filters = filters or RecipeFilter()
    query = db.query(Recipe)

    if filters.is_active is not None:
        query = query.filter(Recipe.is_active == filters.is_active)
    if filters.difficulty_level is not None:
        query = query.filter(Recipe.difficulty_level == filters.difficulty_level)
    if filters.max_cooking_time is not None:
        query = query.filter(Recipe.cooking_time <= filters.max_cooking_time)
    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(
            or_(
                Recipe.name.ilike(pattern),
                Recipe.description.ilike(pattern),
                Recipe.instructions.ilike(pattern),
            )
        )

    items, total = paginate_query(query.order_by(Recipe.name, Recipe.id), skip, limit)
    return paginated_response(items, total, skip, limit)


# ============== Create / update / delete ==============

def _validate_ingredient_refs(db: Session, ingredients: List[RecipeIngredientCreate]) -> None:
    for ingredient in ingredients:
        if not db.query(Product.id).filter(Product.id == ingredient.product_id).first():
            raise NotFoundError("Product", ingredient.product_id)
        if not db.query(Unit.id).filter(Unit.id == ingredient.unit_id).first():
            raise NotFoundError("Unit", ingredient.unit_id)


def _check_name_unique(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Recipe.id).filter(Recipe.name == name)
    if exclude_id is not None:
        query = query.filter(Recipe.id != exclude_id)
    if query.first():
        raise ValidationError(f"Recipe '{name}' already exists", field="name")


def _ingredient_rows(ingredients: List[RecipeIngredientCreate]) -> List[RecipeIngredient]:
    return [
        RecipeIngredient(
            product_id=ingredient.product_id,
            unit_id=ingredient.unit_id,
            quantity=ingredient.quantity,
            cost_per_unit=ingredient.cost_per_unit,
            is_main=ingredient.is_main,
            sort_order=ingredient.sort_order if ingredient.sort_order is not None else index,
        )
        for index, ingredient in enumerate(ingredients)
    ]


def create_recipe(db: Session, data: RecipeCreate, user_id: Optional[int] = None) -> Recipe:
    _check_name_unique(db, data.name)
    _validate_ingredient_refs(db, data.ingredients)

    cost = calculate_recipe_cost(db, data.ingredients)["total_cost"]
    recipe = Recipe(
        name=data.name,
        description=data.description,
        portion_size=data.portion_size,
        cooking_time=data.cooking_time,
        difficulty_level=data.difficulty_level,
        instructions=data.instructions,
        cost_price=cost,
        margin_percent=data.margin_percent,
        selling_price=(
            selling_price_for(cost, data.margin_percent) if data.margin_percent is not None else None
        ),
        created_by_id=user_id,
        ingredients=_ingredient_rows(data.ingredients),
    )

    try:
        db.add(recipe)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(recipe)
    logger.info("Created recipe %s (%s): cost %s", recipe.id, recipe.name, recipe.cost_price)
    return recipe


def update_recipe(db: Session, recipe_id: int, data: RecipeUpdate) -> Recipe:
    """Update a recipe. A new ingredient list replaces the old one entirely."""
    recipe = get_recipe_by_id(db, recipe_id)
    updates = data.model_dump(exclude_unset=True, exclude={"ingredients"})

    if updates.get("name") is not None:
        _check_name_unique(db, updates["name"], exclude_id=recipe.id)

    cost_changed = False
    try:
        if data.ingredients is not None:
            _validate_ingredient_refs(db, data.ingredients)
            recipe.ingredients.clear()
            db.flush()
            recipe.ingredients.extend(_ingredient_rows(data.ingredients))
            recipe.cost_price = calculate_recipe_cost(db, data.ingredients)["total_cost"]
            cost_changed = True

        for field, value in updates.items():
            setattr(recipe, field, value)

        if (cost_changed or "margin_percent" in updates) and recipe.margin_percent is not None:
            recipe.selling_price = selling_price_for(recipe.cost_price or ZERO, recipe.margin_percent)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(recipe)
    return recipe


def delete_recipe(db: Session, recipe_id: int) -> Recipe:
    """Soft delete."""
    recipe = get_recipe_by_id(db, recipe_id)
    recipe.deactivate()
    db.commit()
    logger.info("Deactivated recipe %s", recipe.id)
    return recipe


# ============== Projections ==============

def scale_recipe(db: Session, recipe_id: int, scale_factor: Decimal) -> Dict[str, Any]:
    """Ingredient quantities and cost multiplied by ``scale_factor``. Nothing is persisted."""
    scale_factor = _dec(scale_factor)
    if scale_factor <= 0:
        raise ValidationError("Scale factor must be greater than zero", field="scale_factor")

    recipe = get_recipe_by_id(db, recipe_id)
    costing = _cost_lines(db, recipe.ingredients, scale=scale_factor)
    return {
        "recipe_id": recipe.id,
        "name": recipe.name,
        "scale_factor": scale_factor,
        "portion_size": _dec(recipe.portion_size) * scale_factor,
        **costing,
    }


def check_ingredient_availability(
    db: Session,
    recipe_id: int,
    warehouse_id: int,
    portions: Decimal = Decimal("1"),
) -> Dict[str, Any]:
    """Compare ``quantity * portions`` of every ingredient with the warehouse balance."""
    recipe = get_recipe_by_id(db, recipe_id)
    portions = _dec(portions)

    missing = []
    for ingredient in recipe.ingredients:
        required = _dec(ingredient.quantity) * portions
        available = stock_service.get_available_quantity(db, warehouse_id, ingredient.product_id)
        if available < required:
            missing.append({
                "product_id": ingredient.product_id,
                "product_name": ingredient.product.name,
                "required": required,
                "available": available,
                "unit_name": ingredient.unit.short_name if ingredient.unit else None,
            })

    return {"available": not missing, "missing_ingredients": missing}


def get_recipe_profitability(db: Session) -> List[Dict[str, Any]]:
    """Profit and margin of active recipes that have both a cost and a selling price."""
    recipes = (
        db.query(Recipe)
        .filter(
            Recipe.active(),
            Recipe.cost_price.isnot(None),
            Recipe.selling_price.isnot(None),
        )
        .order_by(Recipe.name)
        .all()
    )

    result = []
    for recipe in recipes:
        cost = _dec(recipe.cost_price)
        selling = _dec(recipe.selling_price)
        profit = selling - cost
        margin = (profit / selling * 100) if selling > 0 else ZERO
        result.append({
            "recipe_id": recipe.id,
            "recipe_name": recipe.name,
            "cost_price": cost,
            "selling_price": selling,
            "profit": profit,
            "profit_margin": margin.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP),
        })
    return result
