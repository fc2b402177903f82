from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..storage.database import unit_of_work
from ..storage.models import Category

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Breakfast",
    "Lunch",
    "Dinner",
    "Dessert",
    "Snacks",
    "Drinks",
)


def seed_default_categories(session: Session) -> int:
    """Insert any missing default category. Returns how many were added."""
    with unit_of_work(session):
        existing = set(session.scalars(select(Category.name)))
        missing = [name for name in DEFAULT_CATEGORIES if name not in existing]
        session.add_all(Category(name=name, is_default=True) for name in missing)

    if missing:
        logger.info("Created %d default categories", len(missing))
    return len(missing)


def list_categories(session: Session) -> list[Category]:
    categories = list(session.scalars(select(Category).order_by(Category.name.asc())))
    logger.info("Retrieved %d categories", len(categories))
    return categories


def find_category_by_name(session: Session, name: str) -> Category | None:
    return session.scalar(select(Category).where(Category.name == name))
