from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from ..errors import CategoryNotFound
from ..storage.database import unit_of_work
from ..storage.models import (
    MAX_ROW_ID,
    Category,
    Ingredient,
    Recipe,
    Step,
    recipe_categories,
)
from .models import IngredientRequest, RecipeRequest, StepRequest
from .query import find_owned_recipe

logger = logging.getLogger(__name__)

_CHILD_COLLECTIONS = ["ingredients", "steps", "categories"]


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def validate_categories(session: Session, category_ids: Iterable[int]) -> list[Category]:
    """
    Return the requested categories in request order.

    Raises ``CategoryNotFound`` for the first requested id that does not
    exist, before anything has been written.
    """
    requested = list(dict.fromkeys(category_ids))
    storable = [cid for cid in requested if 1 <= cid <= MAX_ROW_ID]
    found = {
        c.id: c
        for c in session.scalars(select(Category).where(Category.id.in_(storable)))
    }
    missing = [cid for cid in requested if cid not in found]
    if missing:
        logger.warning("Category validation failed, missing ids: %s", missing)
        raise CategoryNotFound(missing[0])
    return [found[cid] for cid in requested]


def number_ingredients(ingredients: Iterable[IngredientRequest]) -> list[dict[str, Any]]:
    """Assign sort positions 1..N in the order the request lists them."""
    return [
        {"quantity": i.quantity, "unit": i.unit, "name": i.name, "sort_order": n}
        for n, i in enumerate(ingredients, start=1)
    ]


def number_steps(steps: Iterable[StepRequest]) -> list[dict[str, Any]]:
    return [
        {"instruction": s.instruction, "step_number": n}
        for n, s in enumerate(steps, start=1)
    ]


def _insert_children(
    session: Session,
    recipe_id: int,
    ingredients: list[dict[str, Any]],
    steps: list[dict[str, Any]],
    categories: list[Category],
) -> None:
    session.execute(insert(Ingredient), [{**row, "recipe_id": recipe_id} for row in ingredients])
    session.execute(insert(Step), [{**row, "recipe_id": recipe_id} for row in steps])
    session.execute(
        insert(recipe_categories),
        [
            {"recipe_id": recipe_id, "category_id": c.id, "position": n}
            for n, c in enumerate(categories, start=1)
        ],
    )


def _delete_children(session: Session, recipe_id: int) -> None:
    session.execute(delete(Ingredient).where(Ingredient.recipe_id == recipe_id))
    session.execute(delete(Step).where(Step.recipe_id == recipe_id))
    session.execute(delete(recipe_categories).where(recipe_categories.c.recipe_id == recipe_id))


def add_recipe(session: Session, request: RecipeRequest, user_id: int) -> Recipe:
    """Write a new recipe and its children into the caller's unit of work."""
    categories = validate_categories(session, request.category_ids)
    ingredients = number_ingredients(request.ingredients)
    steps = number_steps(request.steps)

    now = _now()
    recipe = Recipe(
        user_id=user_id,
        title=request.title,
        difficulty=request.difficulty,
        cooking_time_minutes=request.cooking_time_minutes,
        created_at=now,
        updated_at=now,
    )
    session.add(recipe)
    session.flush()

    _insert_children(session, recipe.id, ingredients, steps, categories)
    session.expire(recipe, _CHILD_COLLECTIONS)
    return recipe


def create_recipe(session: Session, request: RecipeRequest, user_id: int) -> int:
    logger.info("Creating recipe for user %s", user_id)

    with unit_of_work(session):
        recipe = add_recipe(session, request, user_id)

    logger.info("Recipe created successfully with ID %s", recipe.id)
    return recipe.id


def update_recipe(session: Session, recipe_id: int, user_id: int, request: RecipeRequest) -> int:
    """
    Replace a recipe's fields, ingredients, steps and categories.

    The old child rows are deleted and the new ones inserted in the same
    unit of work; nothing is merged. ``id`` and ``created_at`` survive.
    """
    logger.info("Updating recipe %s for user %s", recipe_id, user_id)

    with unit_of_work(session):
        recipe = find_owned_recipe(session, recipe_id, user_id)
        categories = validate_categories(session, request.category_ids)
        ingredients = number_ingredients(request.ingredients)
        steps = number_steps(request.steps)

        _delete_children(session, recipe.id)

        recipe.title = request.title
        recipe.difficulty = request.difficulty
        recipe.cooking_time_minutes = request.cooking_time_minutes
        recipe.updated_at = max(_now(), recipe.created_at)

        _insert_children(session, recipe.id, ingredients, steps, categories)
        session.expire(recipe, _CHILD_COLLECTIONS)

    logger.info("Recipe %s updated successfully", recipe.id)
    return recipe.id


def delete_recipe(session: Session, recipe_id: int, user_id: int) -> None:
    logger.info("Deleting recipe %s for user %s", recipe_id, user_id)

    with unit_of_work(session):
        recipe = find_owned_recipe(session, recipe_id, user_id)
        _delete_children(session, recipe.id)
        session.delete(recipe)

    logger.info("Recipe %s deleted", recipe_id)
