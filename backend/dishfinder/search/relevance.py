"""
Natural-language relevance for the full-text tier.

TF-IDF over the candidate documents, cosine similarity against the query,
scaled to 0..100.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

logger = logging.getLogger(__name__)


def tfidf_relevance(query: str, documents: Sequence[str]) -> List[float]:
    """Score each document against the query. Unscorable input yields zeros."""
    if not documents:
        return []
    if not query.strip():
        return [0.0] * len(documents)

    vectorizer = TfidfVectorizer(lowercase=True, sublinear_tf=True)
    try:
        doc_matrix = vectorizer.fit_transform(documents)
    except ValueError:
        # empty vocabulary: every document is stop words or single characters
        logger.debug("TF-IDF vocabulary empty for %d documents", len(documents))
        return [0.0] * len(documents)

    query_vector = vectorizer.transform([query])
    similarities = cosine_similarity(query_vector, doc_matrix).ravel()
    return [float(s) for s in np.round(similarities * 100.0, 2)]
