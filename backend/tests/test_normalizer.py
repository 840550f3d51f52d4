"""
Unit tests for query normalization and phonetic keys.
"""

import pytest

from dishfinder.core.errors import InvalidQuery
from dishfinder.search.normalizer import canonicalize, canonicalize_title, normalize, tokenize
from dishfinder.search.phonetics import soundex, sounds_like


def test_canonical_form_collapses_case_and_whitespace():
    assert canonicalize("  Butter \t CHICKEN\n") == "butter chicken"


def test_equivalent_queries_share_fingerprint():
    a = normalize("Butter   Chicken")
    b = normalize("butter chicken ")
    assert a.canonical == b.canonical == "butter chicken"
    assert a.fingerprint == b.fingerprint
    assert a.original_text == "Butter   Chicken"


def test_search_terms_strip_edge_punctuation_but_keep_hyphens():
    q = normalize("Pad-See-Ew!!  (spicy)")
    assert q.tokens == ("pad-see-ew", "spicy")
    assert q.search_terms == "pad-see-ew spicy"


def test_accents_are_kept():
    assert canonicalize("Crème Brûlée") == "crème brûlée"


def test_punctuation_only_query_falls_back_to_raw_words():
    q = normalize("?!")
    assert q.tokens == ("?!",)


def test_tokenize_drops_empty_tokens():
    assert tokenize("... chicken ,") == ("chicken",)


@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_query_is_rejected(text):
    with pytest.raises(InvalidQuery):
        normalize(text)


def test_title_canonical_form_matches_query_canonical_form():
    assert canonicalize_title(" Butter  Chicken ") == normalize("BUTTER CHICKEN").canonical


def test_soundex_keeps_full_consonant_skeleton():
    assert soundex("Butter Chicken") == "B36225"
    assert soundex("buter chiken") == "B36225"


def test_soundex_pads_short_keys():
    assert soundex("Lee") == "L000"


def test_soundex_transliterates_accents():
    assert soundex("Crème") == soundex("Creme")


def test_sounds_like_needs_letters():
    assert sounds_like("Butter Chicken", "buter chiken")
    assert not sounds_like("123", "123")
    assert not sounds_like("Tabbouleh", "Butter Chicken")
