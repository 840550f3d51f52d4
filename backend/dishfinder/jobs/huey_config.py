"""Huey configuration: SQLite storage, or in-memory for tests and local runs."""
from pathlib import Path

from huey import MemoryHuey, SqliteHuey

from ..core.config import get_settings

settings = get_settings()

if settings.huey_backend == "memory":
    huey = MemoryHuey("dishfinder", immediate=settings.huey_immediate)
else:
    Path(settings.huey_db_path).parent.mkdir(parents=True, exist_ok=True)
    huey = SqliteHuey("dishfinder", filename=settings.huey_db_path, immediate=settings.huey_immediate)
