from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .auth.dependencies import require_user, require_user_id
from .auth.models import LoginRequest, RegisterRequest, UserOut
from .auth.users import authenticate, register
from .categories.catalog import list_categories, seed_default_categories
from .config import DEFAULT_APP_CONFIG
from .errors import (
    CategoryNotFound,
    InvalidCredentials,
    PersistenceError,
    QueryValidationError,
    RecipeNotFound,
    RegistrationError,
    UsernameTaken,
)
from .recipes.filters import build_filter
from .recipes.models import (
    ApiResponse,
    CategoriesOut,
    RecipeDetail,
    RecipeIdOut,
    RecipePage,
    RecipeRequest,
    success,
)
from .recipes.mutations import create_recipe, delete_recipe, update_recipe
from .recipes.projection import category_out
from .recipes.query import get_recipe, list_recipes
from .storage.database import SessionLocal, get_session, init_db, ping

logging.basicConfig(
    level=DEFAULT_APP_CONFIG.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with SessionLocal() as session:
        seed_default_categories(session)
    yield


app = FastAPI(title="Recipe Notebook API", version="1.0.0", lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=DEFAULT_APP_CONFIG.session_secret)


def _error(status_code: int, message: str, data: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "data": data},
    )


def _field_key(loc: tuple) -> str:
    """("body", "ingredients", 0, "name") -> "ingredients[0].name"."""
    key = ""
    for part in loc[1:] or loc:
        if isinstance(part, int):
            key += f"[{part}]"
        else:
            key += f".{part}" if key else str(part)
    return key


# ── Error mapping ────────────────────────────────────────────────────────


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = {_field_key(tuple(e["loc"])): e["msg"] for e in exc.errors()}
    logger.warning("Validation failed: %s", errors)
    return _error(400, "Validation failed", {"errors": errors})


@app.exception_handler(QueryValidationError)
async def handle_query_validation(request: Request, exc: QueryValidationError):
    return _error(400, "Validation failed", {"errors": exc.errors})


@app.exception_handler(CategoryNotFound)
async def handle_category_not_found(request: Request, exc: CategoryNotFound):
    logger.warning("Category validation failed: %s", exc)
    return _error(404, "Invalid category ID", {"errors": {"categoryIds": str(exc)}})


@app.exception_handler(RecipeNotFound)
async def handle_recipe_not_found(request: Request, exc: RecipeNotFound):
    logger.warning("Recipe not found: %s", exc)
    return _error(404, "Recipe not found")


@app.exception_handler(UsernameTaken)
async def handle_username_taken(request: Request, exc: UsernameTaken):
    return _error(409, "Username already exists")


@app.exception_handler(InvalidCredentials)
async def handle_invalid_credentials(request: Request, exc: InvalidCredentials):
    return _error(401, "Invalid username or password")


@app.exception_handler(RegistrationError)
async def handle_registration_error(request: Request, exc: RegistrationError):
    logger.error("Registration failed: %s", exc)
    return _error(500, "An unexpected error occurred during registration")


@app.exception_handler(PersistenceError)
async def handle_persistence_error(request: Request, exc: PersistenceError):
    return _error(500, "An unexpected error occurred")


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/api/health")
def health() -> JSONResponse:
    up = ping()
    state = "UP" if up else "DOWN"
    return JSONResponse(
        status_code=200 if up else 503,
        content={
            "status": state,
            "database": state,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/api/v1/auth/register", status_code=201, response_model=ApiResponse[UserOut])
def register_user(body: RegisterRequest, session: Session = Depends(get_session)):
    user = register(session, body.username, body.password)
    return success("User registered successfully", UserOut(**user))


@app.post("/api/v1/auth/login", response_model=ApiResponse[UserOut])
def login(body: LoginRequest, request: Request, session: Session = Depends(get_session)):
    user = authenticate(session, body.username, body.password)
    request.session["user"] = user
    return success("Login successful", UserOut(**user))


@app.post("/api/v1/auth/logout", response_model=ApiResponse[None])
def logout(request: Request):
    request.session.clear()
    return success("Logged out")


@app.get("/api/v1/auth/me", response_model=ApiResponse[UserOut])
def auth_me(user: dict = Depends(require_user)):
    return success("Current user", UserOut(**user))


# ── Categories ───────────────────────────────────────────────────────────


@app.get("/api/v1/categories", response_model=ApiResponse[CategoriesOut])
def categories(
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    data = CategoriesOut(categories=[category_out(c) for c in list_categories(session)])
    return success("Categories retrieved successfully", data)


# ── Recipes ──────────────────────────────────────────────────────────────


@app.get("/api/v1/recipes", response_model=ApiResponse[RecipePage])
def recipes(
    page: str = "0",
    size: str = str(DEFAULT_APP_CONFIG.default_page_size),
    sort: str = "title",
    direction: str = "asc",
    category_ids: str | None = Query(default=None, alias="categoryIds"),
    difficulty: str | None = None,
    search: str | None = None,
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    recipe_filter = build_filter(
        user_id,
        page=page,
        size=size,
        sort=sort,
        direction=direction,
        category_ids=category_ids,
        difficulty=difficulty,
        search=search,
    )
    return success("Recipes retrieved successfully", list_recipes(session, recipe_filter))


@app.get("/api/v1/recipes/{recipe_id}", response_model=ApiResponse[RecipeDetail])
def recipe_detail(
    recipe_id: int,
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    return success("Recipe retrieved successfully", get_recipe(session, recipe_id, user_id))


@app.post("/api/v1/recipes", status_code=201, response_model=ApiResponse[RecipeIdOut])
def recipe_create(
    body: RecipeRequest,
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    recipe_id = create_recipe(session, body, user_id)
    return success("Recipe created successfully", RecipeIdOut(recipe_id=recipe_id))


@app.put("/api/v1/recipes/{recipe_id}", response_model=ApiResponse[RecipeIdOut])
def recipe_update(
    recipe_id: int,
    body: RecipeRequest,
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    updated_id = update_recipe(session, recipe_id, user_id, body)
    return success("Recipe updated successfully", RecipeIdOut(recipe_id=updated_id))


@app.delete("/api/v1/recipes/{recipe_id}", response_model=ApiResponse[None])
def recipe_delete(
    recipe_id: int,
    user_id: int = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    delete_recipe(session, recipe_id, user_id)
    return success("Recipe deleted successfully")
