"""
Dishfinder - Vercel Serverless Entry Point
==========================================

Exposes the FastAPI application from the backend to Vercel's Python runtime.

Environment Variables (set in Vercel dashboard):
  - OPENAI_API_KEY: Required for auto-find recipe synthesis
  - UPSTASH_REDIS_REST_URL: Shared cache, quota and de-dup counters
  - UPSTASH_REDIS_REST_TOKEN: Shared cache, quota and de-dup counters
  - TRUST_FORWARDED_FOR=true: Vercel overwrites X-Forwarded-For with the client address
"""

import sys
from pathlib import Path

# Add the backend directory to Python path
# This allows imports like "from dishfinder.search.pipeline import SearchPipeline"
backend_dir = Path(__file__).resolve().parent.parent / "backend"
sys.path.insert(0, str(backend_dir))

from main import app  # noqa: E402,F401
