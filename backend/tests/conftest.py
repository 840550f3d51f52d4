"""
Shared test setup.

Every test runs offline: in-memory recipe store and counters, huey in
immediate in-memory mode, mock synthesis, and a per-test job log.
"""

import os
from datetime import datetime, timedelta, timezone

# Must be set before dishfinder reads its settings.
os.environ["RECIPE_STORE_BACKEND"] = "memory"
os.environ["ANALYTICS_BACKEND"] = "memory"
os.environ["HUEY_BACKEND"] = "memory"
os.environ["HUEY_IMMEDIATE"] = "true"
os.environ["SYNTHESIS_PROVIDER"] = "mock"
os.environ["OPENAI_API_KEY"] = ""
os.environ["UPSTASH_REDIS_REST_URL"] = ""
os.environ["UPSTASH_REDIS_REST_TOKEN"] = ""
os.environ.pop("SEED_RECIPES_PATH", None)

import pytest

from dishfinder.schemas.recipes import RecipeRecord

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def offline_app(tmp_path, monkeypatch):
    """Fresh settings and components for every test."""
    monkeypatch.setenv("JOB_LOG_PATH", str(tmp_path / "jobs.jsonl"))

    from dishfinder.core.config import get_settings
    from dishfinder.dependencies import reset_dependencies

    get_settings.cache_clear()
    reset_dependencies()
    yield
    get_settings.cache_clear()
    reset_dependencies()


def make_recipe(title: str, *, days: int = 0, **fields) -> RecipeRecord:
    fields.setdefault("ingredients", ["salt"])
    fields.setdefault("steps", ["Cook."])
    return RecipeRecord(title=title, created_at=BASE_TIME + timedelta(days=days), **fields)


@pytest.fixture
def sample_recipes():
    return [
        make_recipe(
            "Butter Chicken",
            days=1,
            origin_country="India",
            authenticity_status="verified",
            ingredients=["chicken thighs", "butter", "tomato puree", "cream"],
            history="Created in Delhi at Moti Mahal.",
        ),
        make_recipe(
            "Chicken Tikka Masala",
            days=3,
            origin_country="United Kingdom",
            authenticity_status="community",
            ingredients=["chicken breast", "yogurt", "tomato", "cream", "chicken stock"],
        ),
        make_recipe(
            "Tabbouleh",
            days=2,
            origin_country="Lebanon",
            authenticity_status="verified",
            ingredients=["parsley", "mint", "bulgur", "lemon"],
        ),
        make_recipe(
            "Rejected Chicken Curry",
            days=4,
            authenticity_status="rejected",
            ingredients=["chicken"],
        ),
        make_recipe(
            "Draft Chicken Soup",
            days=5,
            status="draft",
            ingredients=["chicken"],
        ),
    ]
