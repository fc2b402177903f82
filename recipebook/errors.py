from __future__ import annotations


class RecipeBookError(Exception):
    """Base class for errors the API maps to a response."""


class QueryValidationError(RecipeBookError):
    """One or more listing parameters are malformed.

    ``errors`` maps the offending parameter name to a message; every
    detected problem is reported, not just the first one.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Query parameter validation failed")
        self.errors = errors


class RecipeNotFound(RecipeBookError):
    """Recipe is absent or belongs to somebody else."""

    def __init__(self, message: str = "Recipe not found") -> None:
        super().__init__(message)


class CategoryNotFound(RecipeBookError):
    def __init__(self, category_id: int) -> None:
        super().__init__(f"Category with ID {category_id} does not exist")
        self.category_id = category_id


class UsernameTaken(RecipeBookError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username already exists: {username}")
        self.username = username


class InvalidCredentials(RecipeBookError):
    pass


class PersistenceError(RecipeBookError):
    """The store rejected a unit of work; nothing from it was committed."""


class RegistrationError(RecipeBookError):
    pass
