"""
Backend selection for the recipe repository and the counter store.
"""

from __future__ import annotations

import logging

from ..core.config import Settings
from ..data.loaders import load_seed_recipes
from .counters import CounterStore, InMemoryCounterStore, UpstashCounterStore
from .repository import InMemoryRecipeRepository, RecipeRepository
from .sqlite_repository import SqliteRecipeRepository

logger = logging.getLogger(__name__)


def build_recipe_repository(settings: Settings) -> RecipeRepository:
    """Create the configured repository and load seed recipes into it, if any."""
    if settings.recipe_store_backend == "memory":
        repository: RecipeRepository = InMemoryRecipeRepository()
    else:
        repository = SqliteRecipeRepository(settings.recipe_db_path)

    if settings.seed_recipes_path:
        created = repository.add_many(load_seed_recipes(settings.seed_recipes_path))
        logger.info("Seeded %d new recipes", created)

    logger.info(
        "Recipe store: %s (%d recipes)", settings.recipe_store_backend, repository.count()
    )
    return repository


def build_counter_store(settings: Settings) -> CounterStore:
    """Upstash Redis when configured, otherwise a process-local store."""
    url = settings.upstash_redis_rest_url
    token = settings.upstash_redis_rest_token
    if url and token:
        try:
            return UpstashCounterStore(url, token)
        except Exception as e:
            logger.warning("Failed to configure Upstash Redis: %s", e)
    else:
        logger.info("Upstash not configured (no UPSTASH_REDIS_REST_URL), using in-memory counters")
    return InMemoryCounterStore()
