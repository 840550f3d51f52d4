"""
Recipe Store Adapter: bounded, non-blocking reads for the match tiers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from ..core.errors import TierFailure
from ..schemas.recipes import RecipeRecord
from .predicates import RecipeQuery
from .repository import RecipeRepository

logger = logging.getLogger(__name__)


class RecipeStoreAdapter:
    """Runs repository reads in a worker thread with a timeout."""

    def __init__(self, repository: RecipeRepository, *, timeout_seconds: float = 3.0):
        self.repository = repository
        self.timeout_seconds = timeout_seconds

    async def fetch(self, query: RecipeQuery, *, tier: str) -> list[RecipeRecord]:
        """
        Execute a read query for one match tier.

        Raises:
            TierFailure: if the read raises or exceeds the timeout.
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.repository.find, query),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("%s tier read timed out after %.1fs", tier, self.timeout_seconds)
            raise TierFailure(tier, exc) from exc
        except Exception as exc:
            raise TierFailure(tier, exc) from exc

    async def fetch_all(self, query: RecipeQuery, *, tier: str, batch_size: int = 500) -> list[RecipeRecord]:
        """
        Every record matching query, newest first, read batch_size rows at a time.

        Each batch is a separate bounded read; any failing batch fails the tier.
        """
        records: list[RecipeRecord] = []
        offset = 0
        while True:
            batch = await self.fetch(replace(query, limit=batch_size, offset=offset), tier=tier)
            records.extend(batch)
            if len(batch) < batch_size:
                return records
            offset += batch_size
