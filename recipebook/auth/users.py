from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..categories.catalog import find_category_by_name
from ..errors import InvalidCredentials, RegistrationError, UsernameTaken
from ..recipes.models import IngredientRequest, RecipeRequest, StepRequest
from ..recipes.mutations import add_recipe
from ..storage.database import unit_of_work
from ..storage.models import Difficulty, User
from .models import MAX_PASSWORD_BYTES

logger = logging.getLogger(__name__)

SAMPLE_CATEGORY = "Dessert"

_SAMPLE_INGREDIENTS = [
    ("2¼", "cups", "all-purpose flour"),
    ("1", "tsp", "baking soda"),
    ("1", "tsp", "salt"),
    ("1", "cup", "butter, softened"),
    ("¾", "cup", "granulated sugar"),
    ("¾", "cup", "packed brown sugar"),
    ("2", "large", "eggs"),
    ("2", "tsp", "vanilla extract"),
    ("2", "cups", "chocolate chips"),
]

_SAMPLE_STEPS = [
    "Preheat oven to 375°F (190°C).",
    "Combine flour, baking soda, and salt in a bowl.",
    "Beat butter and sugars until creamy. Add eggs and vanilla.",
    "Gradually blend in flour mixture. Stir in chocolate chips.",
    "Drop rounded tablespoons onto ungreased baking sheets.",
    "Bake for 9-11 minutes or until golden brown.",
]


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    if len(plain.encode()) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def _as_session_user(user: User) -> dict[str, Any]:
    return {"id": user.id, "username": user.username}


def _sample_recipe(category_id: int) -> RecipeRequest:
    return RecipeRequest(
        title="Classic Chocolate Chip Cookies",
        difficulty=Difficulty.EASY,
        cooking_time_minutes=25,
        category_ids=[category_id],
        ingredients=[
            IngredientRequest(quantity=q, unit=u, name=n) for q, u, n in _SAMPLE_INGREDIENTS
        ],
        steps=[StepRequest(instruction=text) for text in _SAMPLE_STEPS],
    )


def register(session: Session, username: str, password: str) -> dict[str, Any]:
    """Create a user plus a starter recipe. Returns ``{id, username}``."""
    logger.info("Registration attempt for username: %s", username)

    with unit_of_work(session):
        if session.scalar(select(User.id).where(User.username == username)) is not None:
            logger.warning("Registration attempt with existing username: %s", username)
            raise UsernameTaken(username)

        user = User(
            username=username,
            password_hash=_hash_password(password),
            created_at=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        session.add(user)
        session.flush()

        dessert = find_category_by_name(session, SAMPLE_CATEGORY)
        if dessert is None:
            raise RegistrationError(f"{SAMPLE_CATEGORY} category not found")
        add_recipe(session, _sample_recipe(dessert.id), user.id)

    logger.info("Registration completed successfully for user: %s", username)
    return _as_session_user(user)


def authenticate(session: Session, username: str, password: str) -> dict[str, Any]:
    """Verify credentials. Returns ``{id, username}`` or raises ``InvalidCredentials``."""
    user = session.scalar(select(User).where(User.username == username))
    if user and _verify_password(password, user.password_hash):
        return _as_session_user(user)
    logger.warning("Authentication failed for username: %s", username)
    raise InvalidCredentials("Invalid username or password")
