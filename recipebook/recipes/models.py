from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..storage.models import MAX_ROW_ID, Difficulty

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlank = Annotated[str, AfterValidator(_not_blank)]


# ── Requests ─────────────────────────────────────────────────────────────


class IngredientRequest(CamelModel):
    quantity: NonBlank = Field(..., min_length=1, max_length=20)
    unit: NonBlank = Field(..., min_length=1, max_length=20)
    name: NonBlank = Field(..., min_length=1, max_length=50)


class StepRequest(CamelModel):
    instruction: NonBlank = Field(..., min_length=1, max_length=500)


class RecipeRequest(CamelModel):
    """Body shared by create and update; update replaces everything."""

    title: NonBlank = Field(..., min_length=1, max_length=100)
    difficulty: Difficulty
    cooking_time_minutes: int = Field(..., ge=1, le=MAX_ROW_ID)
    category_ids: list[int] = Field(..., min_length=1)
    ingredients: list[IngredientRequest] = Field(..., min_length=1)
    steps: list[StepRequest] = Field(..., min_length=2)


# ── Responses ────────────────────────────────────────────────────────────


class CategoryOut(CamelModel):
    id: int
    name: str
    is_default: bool


class IngredientOut(CamelModel):
    id: int
    quantity: str
    unit: str
    name: str
    sort_order: int


class StepOut(CamelModel):
    id: int
    step_number: int
    instruction: str


class RecipeSummary(CamelModel):
    id: int
    title: str
    difficulty: Difficulty
    cooking_time_minutes: int
    categories: list[CategoryOut]
    created_at: datetime
    updated_at: datetime


class RecipeDetail(RecipeSummary):
    ingredients: list[IngredientOut]
    steps: list[StepOut]


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_recipes: int
    page_size: int
    has_next: bool
    has_previous: bool


class RecipePage(CamelModel):
    recipes: list[RecipeSummary]
    pagination: Pagination


class RecipeIdOut(CamelModel):
    recipe_id: int


class CategoriesOut(CamelModel):
    categories: list[CategoryOut]


class ApiResponse(BaseModel, Generic[T]):
    status: str
    message: str
    data: T | None = None


def success(message: str, data: T | None = None) -> ApiResponse[T]:
    return ApiResponse(status="success", message=message, data=data)
