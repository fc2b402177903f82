from __future__ import annotations

import logging
import math
from functools import reduce
from typing import Callable

from sqlalchemy import and_, func, select, true
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from ..errors import RecipeNotFound
from ..storage.models import MAX_ROW_ID, Category, Recipe
from .filters import RecipeFilter
from .models import Pagination, RecipeDetail, RecipePage
from .projection import to_detail, to_summary

logger = logging.getLogger(__name__)

PredicateFragment = Callable[[RecipeFilter], ColumnElement | None]

SORT_COLUMNS = {
    "title": Recipe.title,
    "cookingTimeMinutes": Recipe.cooking_time_minutes,
    "createdAt": Recipe.created_at,
    "updatedAt": Recipe.updated_at,
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ── Predicate fragments ──────────────────────────────────────────────────
# Each returns None when its filter is absent; None never narrows results.


def owned_by(recipe_filter: RecipeFilter) -> ColumnElement:
    return Recipe.user_id == recipe_filter.user_id


def in_any_category(recipe_filter: RecipeFilter) -> ColumnElement | None:
    if not recipe_filter.category_ids:
        return None
    # EXISTS over the association: a recipe in several requested
    # categories still counts once.
    return Recipe.categories.any(Category.id.in_(recipe_filter.category_ids))


def has_difficulty(recipe_filter: RecipeFilter) -> ColumnElement | None:
    if recipe_filter.difficulty is None:
        return None
    return Recipe.difficulty == recipe_filter.difficulty


def title_contains(recipe_filter: RecipeFilter) -> ColumnElement | None:
    term = (recipe_filter.search or "").strip()
    if not term:
        return None
    pattern = f"%{_escape_like(term.lower())}%"
    return func.lower(Recipe.title).like(pattern, escape="\\")


# Ownership comes first and is not optional.
PREDICATES: tuple[PredicateFragment, ...] = (
    owned_by,
    in_any_category,
    has_difficulty,
    title_contains,
)


def compose_predicate(recipe_filter: RecipeFilter) -> ColumnElement:
    """AND together every fragment that applies; absent ones act as TRUE."""
    return reduce(
        lambda acc, clause: acc if clause is None else and_(acc, clause),
        (fragment(recipe_filter) for fragment in PREDICATES),
        true(),
    )


def ordering(recipe_filter: RecipeFilter) -> list[ColumnElement]:
    column = SORT_COLUMNS[recipe_filter.sort_field]
    primary = column.desc() if recipe_filter.sort_direction == "desc" else column.asc()
    # Recipe.id breaks ties so equal sort keys still page deterministically.
    return [primary, Recipe.id.asc()]


def total_pages(total: int, size: int) -> int:
    return math.ceil(total / size) if total else 0


def list_recipes(session: Session, recipe_filter: RecipeFilter) -> RecipePage:
    logger.info(
        "Retrieving recipes for user %s with filters - categoryIds: %s, difficulty: %s, "
        "search: %r, page: %s, size: %s, sort: %s %s",
        recipe_filter.user_id,
        recipe_filter.category_ids,
        recipe_filter.difficulty,
        recipe_filter.search,
        recipe_filter.page,
        recipe_filter.size,
        recipe_filter.sort_field,
        recipe_filter.sort_direction,
    )

    predicate = compose_predicate(recipe_filter)

    total = session.scalar(select(func.count()).select_from(Recipe).where(predicate)) or 0

    stmt = (
        select(Recipe)
        .options(selectinload(Recipe.categories))
        .where(predicate)
        .order_by(*ordering(recipe_filter))
        .offset(recipe_filter.page * recipe_filter.size)
        .limit(recipe_filter.size)
    )
    recipes = session.scalars(stmt).all()

    pages = total_pages(total, recipe_filter.size)
    pagination = Pagination(
        current_page=recipe_filter.page,
        total_pages=pages,
        total_recipes=total,
        page_size=recipe_filter.size,
        has_next=recipe_filter.page + 1 < pages,
        has_previous=recipe_filter.page > 0,
    )

    logger.info(
        "Retrieved %d recipes out of %d total for user %s",
        len(recipes),
        total,
        recipe_filter.user_id,
    )
    return RecipePage(recipes=[to_summary(r) for r in recipes], pagination=pagination)


def find_owned_recipe(session: Session, recipe_id: int, user_id: int) -> Recipe:
    """Load a recipe through the ownership gate.

    A recipe owned by someone else raises exactly like a missing one, and so
    does an id no INTEGER column could hold.
    """
    if not 1 <= recipe_id <= MAX_ROW_ID:
        raise RecipeNotFound()
    recipe = session.scalar(
        select(Recipe)
        .options(
            selectinload(Recipe.ingredients),
            selectinload(Recipe.steps),
            selectinload(Recipe.categories),
        )
        .where(Recipe.id == recipe_id, Recipe.user_id == user_id)
    )
    if recipe is None:
        raise RecipeNotFound()
    return recipe


def get_recipe(session: Session, recipe_id: int, user_id: int) -> RecipeDetail:
    logger.info("Retrieving recipe %s for user %s", recipe_id, user_id)
    return to_detail(find_owned_recipe(session, recipe_id, user_id))
