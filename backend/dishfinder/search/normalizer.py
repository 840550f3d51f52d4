"""
Query normalizer: canonical forms and fingerprints for dish queries.

Only case and whitespace are collapsed. Diacritics and hyphens are part of
many dish names ("crème brûlée", "pad-see-ew") and are kept as typed.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata

from ..core.errors import InvalidQuery
from ..schemas.search import NormalizedQuery

# Punctuation at token edges; hyphens and apostrophes belong to the word.
_EDGE_PUNCT = re.compile(r"^[^\w'\-]+|[^\w'\-]+$")


def canonicalize(text: str | None) -> str:
    """Case-folded text with runs of whitespace collapsed to single spaces."""
    if not text:
        return ""
    composed = unicodedata.normalize("NFC", text)
    return " ".join(composed.casefold().split())


def tokenize(canonical: str) -> tuple[str, ...]:
    tokens = []
    for raw in canonical.split():
        token = _EDGE_PUNCT.sub("", raw)
        if token:
            tokens.append(token)
    return tuple(tokens)


def fingerprint(canonical: str) -> str:
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def normalize(text: str | None) -> NormalizedQuery:
    """
    Canonicalize a raw query.

    Raises:
        InvalidQuery: if the text is empty after trimming.
    """
    original = (text or "").strip()
    if not original:
        raise InvalidQuery("Query parameter required")

    canonical = canonicalize(original)
    tokens = tokenize(canonical) or tuple(canonical.split())

    return NormalizedQuery(
        canonical=canonical,
        search_terms=" ".join(tokens),
        original_text=original,
        tokens=tokens,
        fingerprint=fingerprint(canonical),
    )


def canonicalize_title(title: str | None) -> str:
    """Canonical form of a stored recipe title, comparable to NormalizedQuery.canonical."""
    return canonicalize((title or "").strip())
