"""
Dishfinder API Routes
=====================

Endpoints:
  - GET /search              resolve a recipe query (200, 202, 400, 429)
  - GET /search/suggest      autocomplete titles for a partial query
  - GET /jobs/{job_id}       auto-find job state and history
  - GET /analytics/queries   most searched queries
  - GET /health
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.config import Settings, get_settings
from ..core.errors import InvalidQuery, QuotaExceeded, TierFailure
from ..dependencies import get_analytics_recorder, get_counter_store, get_pipeline, get_suggester
from ..jobs.job_log import get_job_log
from ..schemas.jobs import JobState
from ..schemas.search import RawQuery, SearchFilters, SearchResponse, SuggestResponse
from ..search.normalizer import normalize
from ..search.pipeline import SearchPipeline
from ..search.suggest import Suggester
from ..services.analytics import AnalyticsRecorder, QueryStats
from ..services.rate_limiter import Identity
from ..store.counters import InMemoryCounterStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

REMAINING_HEADER = "X-AutoFind-Remaining"


def resolve_identity(request: Request, settings: Settings) -> Identity:
    """
    Authenticated user id when present, else the client address.

    The user id is only taken from request.state, where authentication
    middleware puts it. Client-supplied headers never select a user, and
    X-Forwarded-For is read only when trust_forwarded_for is set.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id and str(user_id).strip():
        return Identity(user_id=str(user_id).strip())

    address = None
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        address = forwarded.split(",")[0].strip() or None
    if not address and request.client:
        address = request.client.host
    return Identity(address=address or "unknown")


def _lenient_int(value: Optional[str], default: int, *, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value) if value is not None and value != "" else default
    except ValueError:
        parsed = default
    return max(minimum, min(parsed, maximum))


def _positive_int(value: Optional[str]) -> Optional[int]:
    """Parsed value when it is a positive integer, else None (filter ignored)."""
    try:
        parsed = int(value) if value else None
    except ValueError:
        return None
    return parsed if parsed and parsed > 0 else None


@router.get("/search", response_model=SearchResponse)
async def search(
    request: Request,
    q: Optional[str] = Query(default=None, description="Dish name or free text"),
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    authenticity: Optional[List[str]] = Query(default=None, description="Authenticity statuses to keep"),
    difficulty: Optional[List[str]] = Query(default=None, description="Difficulties to keep"),
    country: Optional[List[str]] = Query(default=None, description="Origin countries to keep"),
    cooking_time_max: Optional[str] = Query(default=None, description="Maximum cooking time in minutes"),
    pipeline: SearchPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    page_number = _lenient_int(page, 1, minimum=1, maximum=10_000)
    page_size = _lenient_int(
        limit, settings.default_page_size, minimum=1, maximum=settings.max_page_size
    )

    if not q or not q.strip():
        body = SearchResponse(
            success=False, page=page_number, limit=page_size, message="Query parameter required"
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))

    identity = resolve_identity(request, settings)
    filters = SearchFilters(
        authenticity=authenticity,
        difficulty=difficulty,
        country=country,
        cooking_time_max=_positive_int(cooking_time_max),
    )
    raw = RawQuery(text=q, page=page_number, page_size=page_size, filters=filters)

    try:
        result = await pipeline.resolve(raw, identity)
    except InvalidQuery as e:
        body = SearchResponse(success=False, page=page_number, limit=page_size, message=str(e))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))
    except QuotaExceeded as e:
        logger.info("Quota exceeded for %s", e.identity_key)
        body = SearchResponse(
            success=False,
            page=page_number,
            limit=page_size,
            message="Daily auto-find limit reached. Please try again later.",
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=body.model_dump(mode="json"),
            headers={REMAINING_HEADER: "0"},
        )
    except Exception as e:
        logger.error("search error for %r: %s", q, e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong. Please try again.",
        )

    headers = {}
    if result.autofind_remaining is not None:
        headers[REMAINING_HEADER] = str(result.autofind_remaining)
    return JSONResponse(
        status_code=result.status_code,
        content=result.response.model_dump(mode="json"),
        headers=headers,
    )


@router.get("/search/suggest", response_model=SuggestResponse)
async def suggest(
    q: Optional[str] = Query(default=None, description="Partially typed dish name"),
    limit: Optional[str] = Query(default=None),
    suggester: Suggester = Depends(get_suggester),
    settings: Settings = Depends(get_settings),
):
    """Autocomplete: top title, ingredient and origin matches. No quota, no auto-find."""
    size = _lenient_int(
        limit, settings.suggest_default_limit, minimum=1, maximum=settings.suggest_max_limit
    )

    text = (q or "").strip()
    if len(text) < settings.suggest_min_chars:
        body = SuggestResponse(
            success=False,
            message=f"Query must be at least {settings.suggest_min_chars} characters long",
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))

    try:
        suggestions = await suggester.suggest(normalize(text), size)
    except TierFailure as e:
        logger.error("suggest failed for %r: %s", text, e.cause)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Suggestions are temporarily unavailable.",
        )

    return SuggestResponse(suggestions=suggestions, total=len(suggestions))


class JobStatusResponse(BaseModel):
    job: JobState


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job(job_id: str):
    """Current state of an auto-find job, with its event history."""
    state = get_job_log().state(job_id)
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return JobStatusResponse(job=state)


class TopQueriesResponse(BaseModel):
    count: int
    queries: List[QueryStats]


@router.get("/analytics/queries", response_model=TopQueriesResponse)
async def top_queries(
    limit: int = Query(default=20, ge=1, le=200, description="Number of queries to return"),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
):
    """Most searched normalized queries."""
    await recorder.flush()
    queries = recorder.top_queries(limit)
    return TopQueriesResponse(count=len(queries), queries=queries)


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint."""
    counters = get_counter_store()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "recipe_store": settings.recipe_store_backend,
        "counter_store": "memory" if isinstance(counters, InMemoryCounterStore) else "upstash",
        "job_queue": settings.huey_backend,
    }
