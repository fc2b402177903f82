from __future__ import annotations

from ..storage.models import Category, Recipe
from .models import CategoryOut, IngredientOut, RecipeDetail, RecipeSummary, StepOut


def category_out(category: Category) -> CategoryOut:
    return CategoryOut(id=category.id, name=category.name, is_default=bool(category.is_default))


def _categories(recipe: Recipe) -> list[CategoryOut]:
    # Association order is already applied by the relationship.
    return [category_out(c) for c in recipe.categories]


def to_summary(recipe: Recipe) -> RecipeSummary:
    """List-view projection: no ingredients or steps."""
    return RecipeSummary(
        id=recipe.id,
        title=recipe.title,
        difficulty=recipe.difficulty,
        cooking_time_minutes=recipe.cooking_time_minutes,
        categories=_categories(recipe),
        created_at=recipe.created_at,
        updated_at=recipe.updated_at,
    )


def to_detail(recipe: Recipe) -> RecipeDetail:
    """
    Full projection of a recipe.

    Ingredients and steps are sorted here on every read; the order the store
    hands the rows back in is not relied upon.
    """
    ingredients = sorted(recipe.ingredients, key=lambda i: i.sort_order)
    steps = sorted(recipe.steps, key=lambda s: s.step_number)

    return RecipeDetail(
        id=recipe.id,
        title=recipe.title,
        difficulty=recipe.difficulty,
        cooking_time_minutes=recipe.cooking_time_minutes,
        categories=_categories(recipe),
        ingredients=[
            IngredientOut(
                id=i.id,
                quantity=i.quantity,
                unit=i.unit,
                name=i.name,
                sort_order=i.sort_order,
            )
            for i in ingredients
        ],
        steps=[
            StepOut(id=s.id, step_number=s.step_number, instruction=s.instruction)
            for s in steps
        ],
        created_at=recipe.created_at,
        updated_at=recipe.updated_at,
    )
