"""
Recipe Synthesis
================

Turns a query that matched nothing into one or more structured recipe drafts.

We use OpenAI JSON mode so the draft shape is stable. Failures are classified
as transient (timeouts, connection errors, rate limits, 5xx, unparseable
output) or permanent (auth, bad request) so the worker knows whether to retry.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import openai
from pydantic import ValidationError

from ..core.config import get_settings
from ..core.errors import SynthesisFailure
from ..schemas.jobs import AutoFindJob
from ..schemas.recipes import RecipeDraft

logger = logging.getLogger(__name__)


SYNTHESIS_SYSTEM_PROMPT = """You are a culinary researcher for a recipe catalogue.

Goal: given a dish name typed by a user, write the authentic recipe(s) it most likely refers to.

Rules:
- Only describe real, established dishes. If the text is not a dish, return {"recipes": []}.
- Prefer the canonical name of the dish as the title, with its country of origin.
- Ingredients: one per line, with quantities.
- Steps: one action per line, in order.
- cooking_time in minutes; difficulty is one of Easy, Medium, Hard.
- history: a short paragraph on the dish's origin. cultural_notes: when and how it is eaten.

Return JSON: {"recipes": [{"title", "origin_country", "origin_region", "ingredients",
"steps", "cooking_time", "difficulty", "history", "cultural_notes"}]}
"""

_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class RecipeSynthesizer(ABC):
    """Abstract base class for synthesis providers."""

    @abstractmethod
    def synthesize(self, job: AutoFindJob) -> List[RecipeDraft]:
        """
        Return drafts for the job's query.

        Raises:
            SynthesisFailure: with ``transient`` set when a retry may succeed.
        """
        raise NotImplementedError


def parse_drafts(content: str, *, max_drafts: int = 3) -> List[RecipeDraft]:
    """Parse a ``{"recipes": [...]}`` payload. Entries that do not fit the draft shape are skipped."""
    try:
        data = json.loads(content or "")
    except json.JSONDecodeError as exc:
        raise SynthesisFailure(f"Unparseable synthesis output: {exc}", transient=True) from exc

    items: Any = data.get("recipes", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise SynthesisFailure("Synthesis output has no recipe list", transient=True)

    drafts: List[RecipeDraft] = []
    for item in items[:max_drafts]:
        try:
            drafts.append(RecipeDraft.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed draft: %s", exc.errors()[:1])
    return drafts


class OpenAIRecipeSynthesizer(RecipeSynthesizer):
    """Synthesizer backed by OpenAI chat completions in JSON mode."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        *,
        max_drafts: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.client = (
            openai.OpenAI(
                api_key=self.api_key,
                timeout=timeout or settings.synthesis_timeout_seconds,
                max_retries=0,
            )
            if self.api_key
            else None
        )
        self.model = model or settings.openai_model
        self.max_drafts = max_drafts or settings.synthesis_max_drafts

    def synthesize(self, job: AutoFindJob) -> List[RecipeDraft]:
        if self.client is None:
            raise SynthesisFailure("OpenAI API key missing for recipe synthesis", transient=False)

        user_prompt = (
            f"Dish requested: {job.original_text}\n"
            f"Normalized: {job.normalized_query}\n\n"
            f"Return at most {self.max_drafts} recipes."
        )
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYNTHESIS_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
            )
        except _TRANSIENT_ERRORS as exc:
            raise SynthesisFailure(f"{type(exc).__name__}: {exc}", transient=True) from exc
        except openai.APIError as exc:
            # auth, permission and bad-request errors will not fix themselves
            raise SynthesisFailure(f"{type(exc).__name__}: {exc}", transient=False) from exc

        content = response.choices[0].message.content if response.choices else ""
        drafts = parse_drafts(content or "", max_drafts=self.max_drafts)
        logger.info("Synthesized %d draft(s) for %r", len(drafts), job.normalized_query)
        return drafts


class MockRecipeSynthesizer(RecipeSynthesizer):
    """
    Deterministic synthesizer for tests/offline environments.

    Returns one draft titled after the query, or whatever ``drafts`` was given.
    """

    def __init__(self, drafts: Optional[List[RecipeDraft]] = None):
        self.drafts = drafts
        self.calls: List[AutoFindJob] = []

    def synthesize(self, job: AutoFindJob) -> List[RecipeDraft]:
        self.calls.append(job)
        if self.drafts is not None:
            return [d.model_copy(deep=True) for d in self.drafts]
        title = " ".join(w.capitalize() for w in job.original_text.split()) or job.normalized_query
        return [
            RecipeDraft(
                title=title,
                ingredients=[f"Base ingredients for {title}"],
                steps=[f"Prepare {title}."],
                cooking_time=30,
                difficulty="Medium",
            )
        ]


def get_synthesizer(provider: str | None = None) -> RecipeSynthesizer:
    """Factory selecting the configured synthesis provider."""
    settings = get_settings()
    provider_name = (provider or settings.synthesis_provider).lower()

    if provider_name == "openai":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set, auto-find jobs will fail")
        return OpenAIRecipeSynthesizer()

    if provider_name == "mock":
        return MockRecipeSynthesizer()

    raise ValueError(f"Unsupported synthesis provider: {provider_name}")
