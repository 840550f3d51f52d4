"""
Load a JSON list of recipes into the configured recipe store.

Usage:
    python scripts/seed_recipes.py [path/to/recipes.json]

Recipes already present (same canonical title and origin country) are skipped.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

DEFAULT_SEED = Path(__file__).resolve().parents[1] / "data" / "sample_recipes.json"


def main(argv: list[str]) -> int:
    # Ensure `dishfinder` package is importable when running as a script
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

    from dishfinder.core.config import get_settings
    from dishfinder.data.loaders import load_seed_recipes
    from dishfinder.store.factory import build_recipe_repository

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    path = Path(argv[1]) if len(argv) > 1 else DEFAULT_SEED
    records = load_seed_recipes(path)
    if not records:
        print(f"No recipes loaded from {path}")
        return 1

    settings = get_settings()
    repository = build_recipe_repository(settings)
    created = repository.add_many(records)
    print(f"Seeded {created} new recipes ({len(records) - created} already present).")
    print(f"Store now holds {repository.count()} recipes ({settings.recipe_store_backend}).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
