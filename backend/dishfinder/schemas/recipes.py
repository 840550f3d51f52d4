"""
Recipe Schemas
==============

Persisted recipe records and the drafts produced by recipe synthesis.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


AuthenticityStatus = Literal["verified", "community", "pending_review", "rejected"]
PublicationStatus = Literal["published", "draft"]

ALLOWED_DIFFICULTIES = ("Easy", "Medium", "Hard")

# Higher weight sorts first in ranked tiers.
AUTHENTICITY_WEIGHTS: dict[str, int] = {
    "verified": 2,
    "community": 1,
}


def authenticity_weight(status: str) -> int:
    return AUTHENTICITY_WEIGHTS.get(status, 0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecipeRecord(BaseModel):
    """A recipe as stored in the recipe repository."""

    id: Optional[int] = None
    title: str = Field(min_length=1)
    canonical_title: str = ""
    origin_country: Optional[str] = None
    origin_region: Optional[str] = None
    image: Optional[str] = None
    cooking_time: Optional[int] = None
    difficulty: Optional[str] = None
    authenticity_status: AuthenticityStatus = "community"
    status: PublicationStatus = "published"
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    history: Optional[str] = None
    cultural_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def origin_key(self) -> str:
        """Case-folded origin used together with the canonical title for de-duplication."""
        return " ".join((self.origin_country or "").casefold().split())

    def text_fields(self) -> dict[str, str]:
        """Indexed text fields used by full-text matching."""
        return {
            "title": self.title,
            "ingredients": "\n".join(self.ingredients),
            "history": self.history or "",
            "cultural_notes": self.cultural_notes or "",
        }


class RecipeDraft(BaseModel):
    """Structured recipe returned by the synthesis service, not yet persisted."""

    title: str
    origin_country: Optional[str] = None
    origin_region: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    cooking_time: Optional[int] = None
    difficulty: Optional[str] = None
    history: Optional[str] = None
    cultural_notes: Optional[str] = None
    image: Optional[str] = None
    authenticity_status: Literal["pending_review"] = "pending_review"

    @field_validator("ingredients", "steps", mode="before")
    @classmethod
    def drop_blank_lines(cls, v):
        if v is None:
            return []
        return [str(item).strip() for item in v if str(item).strip()]

    def validation_errors(self) -> list[str]:
        """Return a list of data-quality problems; empty when the draft can be stored."""
        errors: list[str] = []

        title = (self.title or "").strip()
        if not title:
            errors.append("Title is required")
        elif len(title) > 255:
            errors.append("Title exceeds 255 characters")

        if not self.ingredients:
            errors.append("At least one ingredient is required")
        elif len(self.ingredients) > 100:
            errors.append("Too many ingredients")

        if not self.steps:
            errors.append("At least one step is required")
        elif len(self.steps) > 100:
            errors.append("Too many steps")

        if self.cooking_time is not None and not 1 <= self.cooking_time <= 1440:
            errors.append("Cooking time must be between 1 and 1440 minutes")

        if self.difficulty and self.difficulty not in ALLOWED_DIFFICULTIES:
            errors.append("Difficulty must be Easy, Medium, or Hard")

        if self.history and len(self.history) > 10000:
            errors.append("History exceeds character limit")

        if self.image and len(self.image) > 500:
            errors.append("Image URL exceeds 500 characters")

        return errors

    def to_record(self, canonical_title: str) -> RecipeRecord:
        return RecipeRecord(
            title=self.title.strip(),
            canonical_title=canonical_title,
            origin_country=self.origin_country,
            origin_region=self.origin_region,
            image=self.image,
            cooking_time=self.cooking_time,
            difficulty=self.difficulty,
            authenticity_status=self.authenticity_status,
            status="published",
            ingredients=list(self.ingredients),
            steps=list(self.steps),
            history=self.history,
            cultural_notes=self.cultural_notes,
        )
