from __future__ import annotations

import os

# Must be set before recipebook.config is imported.
os.environ["RECIPEBOOK_DATABASE_URL"] = "sqlite://"

import pytest  # noqa: E402

from recipebook.categories.catalog import seed_default_categories  # noqa: E402
from recipebook.storage.database import SessionLocal, reset_db  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    reset_db()
    with SessionLocal() as session:
        seed_default_categories(session)
    yield


@pytest.fixture
def session():
    with SessionLocal() as s:
        yield s
