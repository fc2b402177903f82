from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import DEFAULT_APP_CONFIG
from ..errors import QueryValidationError
from ..storage.models import MAX_ROW_ID, Difficulty

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS: tuple[str, ...] = ("title", "cookingTimeMinutes", "createdAt", "updatedAt")
ALLOWED_DIRECTIONS: tuple[str, ...] = ("asc", "desc")
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = DEFAULT_APP_CONFIG.max_page_size


@dataclass(frozen=True)
class RecipeFilter:
    """Validated listing parameters. ``user_id`` always comes from the caller."""

    user_id: int
    page: int
    size: int
    sort_field: str = "title"
    sort_direction: str = "asc"
    category_ids: tuple[int, ...] | None = None
    difficulty: Difficulty | None = None
    search: str | None = None


def _parse_int(raw: int | str) -> int | None:
    """Plain ASCII decimal with an optional leading minus; ``None`` otherwise."""
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    digits = text[1:] if text.startswith("-") else text
    if not (digits.isascii() and digits.isdigit()):
        return None
    try:
        return int(text)
    except ValueError:
        # more digits than int() will convert
        return None


def _parse_category_ids(raw: str) -> tuple[int, ...] | None:
    """Parse ``"1, 2,3"``; ``None`` when any element is not a positive integer."""
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not (part.isascii() and part.isdigit()) or len(part) > 19:
            return None
        if not 1 <= int(part) <= MAX_ROW_ID:
            return None
        ids.append(int(part))
    return tuple(ids)


def build_filter(
    user_id: int,
    page: int | str = 0,
    size: int | str = DEFAULT_APP_CONFIG.default_page_size,
    sort: str = "title",
    direction: str = "asc",
    category_ids: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
) -> RecipeFilter:
    """
    Validate raw listing parameters and normalise them into a ``RecipeFilter``.

    Every problem is collected before raising, so the caller gets one
    ``QueryValidationError`` listing all bad parameters.
    """
    errors: dict[str, str] = {}

    page_value = _parse_int(page)
    if page_value is None:
        errors["page"] = "Page number must be an integer"
    elif page_value < 0:
        errors["page"] = "Page number must be >= 0"

    size_value = _parse_int(size)
    if size_value is None or not MIN_PAGE_SIZE <= size_value <= MAX_PAGE_SIZE:
        errors["size"] = f"Page size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}"
    elif "page" not in errors and page_value * size_value > MAX_ROW_ID:
        errors["page"] = "Page number is too large"

    if sort not in ALLOWED_SORT_FIELDS:
        errors["sort"] = f"Must be one of: {', '.join(ALLOWED_SORT_FIELDS)}"

    direction_value = (direction or "").strip().lower()
    if direction_value not in ALLOWED_DIRECTIONS:
        errors["direction"] = f"Must be one of: {', '.join(ALLOWED_DIRECTIONS)}"

    difficulty_value: Difficulty | None = None
    if difficulty and difficulty.strip():
        try:
            difficulty_value = Difficulty(difficulty.strip().upper())
        except ValueError:
            errors["difficulty"] = "Must be one of: EASY, MEDIUM, HARD"

    ids_value: tuple[int, ...] | None = None
    if category_ids and category_ids.strip():
        ids_value = _parse_category_ids(category_ids)
        if ids_value is None:
            errors["categoryIds"] = "Category IDs must be valid positive numbers"
        elif not ids_value:
            ids_value = None

    if errors:
        logger.warning("Rejected recipe listing parameters for user %s: %s", user_id, errors)
        raise QueryValidationError(errors)

    search_value = search.strip() if search else None

    return RecipeFilter(
        user_id=user_id,
        page=page_value,
        size=size_value,
        sort_field=sort,
        sort_direction=direction_value,
        category_ids=ids_value,
        difficulty=difficulty_value,
        search=search_value or None,
    )
