from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Table,
)
from sqlalchemy.orm import relationship

from .database import Base

# Largest value a signed 64-bit INTEGER column can hold.
MAX_ROW_ID = 2**63 - 1


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


# Association table for Recipe and Category (many-to-many). ``position``
# keeps the order in which the request listed the categories.
recipe_categories = Table(
    "recipe_categories",
    Base.metadata,
    Column("recipe_id", Integer, ForeignKey("recipes.id"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id"), primary_key=True),
    Column("position", Integer, nullable=False),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False)


class Category(Base):
    """Shared lookup row; recipes reference it, never own it."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Ingredient(Base):
    __tablename__ = "ingredients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), index=True, nullable=False)
    quantity = Column(String(20), nullable=False)
    unit = Column(String(20), nullable=False)
    name = Column(String(50), nullable=False)
    sort_order = Column(Integer, nullable=False)


class Step(Base):
    __tablename__ = "steps"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), index=True, nullable=False)
    step_number = Column(Integer, nullable=False)
    instruction = Column(String(500), nullable=False)


class Recipe(Base):
    """
    Recipe aggregate root.

    Ingredients and steps carry only a ``recipe_id`` column and no reference
    back to the recipe. The collections below are read-only views: writes go
    through explicit inserts and deletes in ``recipes.mutations``.
    """

    __tablename__ = "recipes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(100), nullable=False)
    difficulty = Column(SAEnum(Difficulty, native_enum=False, length=10), nullable=False)
    cooking_time_minutes = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    ingredients = relationship(Ingredient, viewonly=True)
    steps = relationship(Step, viewonly=True)
    categories = relationship(
        Category,
        secondary=recipe_categories,
        order_by=recipe_categories.c.position,
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title={self.title})>"
