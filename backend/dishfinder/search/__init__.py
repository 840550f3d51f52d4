"""
Dishfinder Search
=================

Query normalization and phonetic keys. The matcher and the pipeline live in
``dishfinder.search.matcher`` and ``dishfinder.search.pipeline``.
"""

from .normalizer import canonicalize, canonicalize_title, fingerprint, normalize, tokenize
from .phonetics import soundex, sounds_like

__all__ = [
    "canonicalize",
    "canonicalize_title",
    "fingerprint",
    "normalize",
    "tokenize",
    "soundex",
    "sounds_like",
]
