"""
Seed data loaders.

Reads a JSON list of recipe objects (the export format of the admin tools)
into RecipeRecord models. Invalid entries are skipped with a warning.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from ..schemas.recipes import RecipeRecord

logger = logging.getLogger(__name__)


def _coerce_lines(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def parse_recipe(item: dict) -> RecipeRecord:
    data = dict(item)
    data.pop("id", None)
    data.pop("canonical_title", None)
    data["ingredients"] = _coerce_lines(data.get("ingredients"))
    data["steps"] = _coerce_lines(data.get("steps") or data.get("instructions"))
    data.pop("instructions", None)
    if "image_url" in data and not data.get("image"):
        data["image"] = data.pop("image_url")
    return RecipeRecord.model_validate(data)


def load_seed_recipes(path: str | Path) -> List[RecipeRecord]:
    """Load recipes from a JSON file. Returns [] if the file is missing."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Seed recipe file not found: %s", path)
        return []

    if not isinstance(raw, list):
        logger.error("Seed recipe file %s must contain a JSON list", path)
        return []

    records: List[RecipeRecord] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        try:
            records.append(parse_recipe(item))
        except ValidationError as exc:
            logger.warning("Skipping seed recipe #%d: %s", index, exc.errors()[0].get("msg"))
    logger.info("Loaded %d seed recipes from %s", len(records), path)
    return records
