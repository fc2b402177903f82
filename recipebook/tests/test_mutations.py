from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from recipebook.categories.catalog import find_category_by_name
from recipebook.errors import CategoryNotFound, PersistenceError, RecipeNotFound
from recipebook.recipes.models import IngredientRequest, RecipeRequest, StepRequest
from recipebook.recipes.mutations import (
    create_recipe,
    delete_recipe,
    number_ingredients,
    number_steps,
    update_recipe,
    validate_categories,
)
from recipebook.recipes.query import get_recipe
from recipebook.storage.models import (
    Category,
    Difficulty,
    Ingredient,
    Recipe,
    Step,
    User,
    recipe_categories,
)


def _user(session, name="alice"):
    user = User(username=name, password_hash="x", created_at=datetime(2024, 1, 1))
    session.add(user)
    session.commit()
    return user.id


def _cat(session, name):
    return find_category_by_name(session, name).id


def _request(title="Pancakes", ingredients=None, steps=None, category_ids=None, **kwargs):
    ingredients = ingredients or [("2", "cups", "flour"), ("1", "cup", "milk"), ("2", "", "eggs")]
    steps = steps or ["Whisk everything.", "Rest the batter.", "Fry in butter."]
    return RecipeRequest(
        title=title,
        difficulty=kwargs.get("difficulty", Difficulty.EASY),
        cooking_time_minutes=kwargs.get("minutes", 20),
        category_ids=category_ids or [1],
        ingredients=[
            IngredientRequest(quantity=q, unit=u or "whole", name=n) for q, u, n in ingredients
        ],
        steps=[StepRequest(instruction=s) for s in steps],
    )


def _count(session, table):
    return session.scalar(select(func.count()).select_from(table))


# ── Numbering ────────────────────────────────────────────────────────────


def test_number_ingredients_follows_request_order():
    rows = number_ingredients(_request().ingredients)
    assert [(r["sort_order"], r["name"]) for r in rows] == [
        (1, "flour"),
        (2, "milk"),
        (3, "eggs"),
    ]


def test_number_steps_contiguous_from_one():
    rows = number_steps(_request().steps)
    assert [r["step_number"] for r in rows] == [1, 2, 3]


# ── Category validation ──────────────────────────────────────────────────


def test_validate_categories_returns_request_order(session):
    dinner, breakfast = _cat(session, "Dinner"), _cat(session, "Breakfast")
    found = validate_categories(session, [dinner, breakfast, dinner])
    assert [c.id for c in found] == [dinner, breakfast]


def test_validate_categories_names_first_missing_id(session):
    with pytest.raises(CategoryNotFound) as exc_info:
        validate_categories(session, [1, 777, 555])
    assert exc_info.value.category_id == 777
    assert str(exc_info.value) == "Category with ID 777 does not exist"


def test_validate_categories_treats_unstorable_id_as_missing(session):
    with pytest.raises(CategoryNotFound) as exc_info:
        validate_categories(session, [1, 10**20])
    assert exc_info.value.category_id == 10**20


def test_create_with_invalid_category_persists_nothing(session):
    owner = _user(session)
    with pytest.raises(CategoryNotFound) as exc_info:
        create_recipe(session, _request(category_ids=[1, 999]), owner)
    assert exc_info.value.category_id == 999
    assert _count(session, Recipe) == 0
    assert _count(session, Ingredient) == 0
    assert _count(session, Step) == 0
    assert _count(session, recipe_categories) == 0


# ── Create ───────────────────────────────────────────────────────────────


def test_create_returns_id_and_stores_children_in_order(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)

    detail = get_recipe(session, recipe_id, owner)
    assert detail.id == recipe_id
    assert detail.title == "Pancakes"
    assert [i.sort_order for i in detail.ingredients] == [1, 2, 3]
    assert [i.name for i in detail.ingredients] == ["flour", "milk", "eggs"]
    assert [s.step_number for s in detail.steps] == [1, 2, 3]
    assert detail.steps[0].instruction == "Whisk everything."
    assert detail.created_at == detail.updated_at


def test_categories_keep_request_order(session):
    owner = _user(session)
    snacks, breakfast = _cat(session, "Snacks"), _cat(session, "Breakfast")
    recipe_id = create_recipe(session, _request(category_ids=[snacks, breakfast]), owner)
    detail = get_recipe(session, recipe_id, owner)
    assert [c.name for c in detail.categories] == ["Snacks", "Breakfast"]


def test_detail_sorts_children_even_when_stored_out_of_order(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)
    # Shuffle the stored positions behind the pipeline's back.
    for ing in session.scalars(select(Ingredient).where(Ingredient.recipe_id == recipe_id)):
        ing.sort_order = 4 - ing.sort_order
    session.commit()
    session.expire_all()

    detail = get_recipe(session, recipe_id, owner)
    assert [i.sort_order for i in detail.ingredients] == [1, 2, 3]
    assert [i.name for i in detail.ingredients] == ["eggs", "milk", "flour"]


def test_reading_twice_gives_identical_projection(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)
    assert get_recipe(session, recipe_id, owner) == get_recipe(session, recipe_id, owner)


# ── Update ───────────────────────────────────────────────────────────────


def test_update_replaces_all_children(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)
    old_ingredient_ids = {i.id for i in get_recipe(session, recipe_id, owner).ingredients}

    dessert = _cat(session, "Dessert")
    update_recipe(
        session,
        recipe_id,
        owner,
        _request(
            title="Crepes",
            ingredients=[("1", "cup", "flour"), ("2", "cups", "milk")],
            steps=["Blend.", "Cook thin."],
            category_ids=[dessert],
            difficulty=Difficulty.HARD,
            minutes=35,
        ),
    )

    detail = get_recipe(session, recipe_id, owner)
    assert detail.id == recipe_id
    assert detail.title == "Crepes"
    assert detail.difficulty is Difficulty.HARD
    assert detail.cooking_time_minutes == 35
    assert len(detail.ingredients) == 2
    assert [i.sort_order for i in detail.ingredients] == [1, 2]
    assert not old_ingredient_ids & {i.id for i in detail.ingredients}
    assert [s.instruction for s in detail.steps] == ["Blend.", "Cook thin."]
    assert [c.name for c in detail.categories] == ["Dessert"]

    assert _count(session, Ingredient) == 2
    assert _count(session, Step) == 2
    assert _count(session, recipe_categories) == 1


def test_update_keeps_created_at_and_refreshes_updated_at(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)
    before = get_recipe(session, recipe_id, owner)

    update_recipe(session, recipe_id, owner, _request(title="Waffles"))
    after = get_recipe(session, recipe_id, owner)

    assert after.created_at == before.created_at
    assert after.updated_at >= after.created_at
    assert after.updated_at >= before.updated_at


def test_update_by_other_user_is_not_found(session):
    owner, intruder = _user(session, "alice"), _user(session, "mallory")
    recipe_id = create_recipe(session, _request(), owner)

    with pytest.raises(RecipeNotFound) as foreign:
        update_recipe(session, recipe_id, intruder, _request(title="Hacked"))
    with pytest.raises(RecipeNotFound) as missing:
        update_recipe(session, 424242, intruder, _request(title="Hacked"))
    assert str(foreign.value) == str(missing.value)

    assert get_recipe(session, recipe_id, owner).title == "Pancakes"


def test_update_with_invalid_category_leaves_recipe_untouched(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)

    with pytest.raises(CategoryNotFound):
        update_recipe(session, recipe_id, owner, _request(title="Changed", category_ids=[404]))

    session.expire_all()
    detail = get_recipe(session, recipe_id, owner)
    assert detail.title == "Pancakes"
    assert len(detail.ingredients) == 3
    assert len(detail.steps) == 3


def test_storage_failure_rolls_back_update(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)

    boom = OperationalError("INSERT", {}, Exception("disk full"))
    with patch("recipebook.recipes.mutations._insert_children", side_effect=boom):
        with pytest.raises(PersistenceError):
            update_recipe(session, recipe_id, owner, _request(title="Half done"))

    session.expire_all()
    detail = get_recipe(session, recipe_id, owner)
    assert detail.title == "Pancakes"
    assert len(detail.ingredients) == 3
    assert len(detail.steps) == 3


def test_storage_failure_rolls_back_create(session):
    owner = _user(session)
    boom = OperationalError("INSERT", {}, Exception("disk full"))
    with patch("recipebook.recipes.mutations._insert_children", side_effect=boom):
        with pytest.raises(PersistenceError):
            create_recipe(session, _request(), owner)
    assert _count(session, Recipe) == 0


# ── Delete ───────────────────────────────────────────────────────────────


def test_delete_removes_children_but_not_categories(session):
    owner = _user(session)
    recipe_id = create_recipe(session, _request(), owner)
    categories_before = _count(session, Category)

    delete_recipe(session, recipe_id, owner)

    assert _count(session, Recipe) == 0
    assert _count(session, Ingredient) == 0
    assert _count(session, Step) == 0
    assert _count(session, recipe_categories) == 0
    assert _count(session, Category) == categories_before
    with pytest.raises(RecipeNotFound):
        get_recipe(session, recipe_id, owner)


def test_delete_by_other_user_is_not_found(session):
    owner, intruder = _user(session, "alice"), _user(session, "mallory")
    recipe_id = create_recipe(session, _request(), owner)
    with pytest.raises(RecipeNotFound):
        delete_recipe(session, recipe_id, intruder)
    assert get_recipe(session, recipe_id, owner).id == recipe_id
