"""
Phonetic keys for the fuzzy match tier.

Soundex over the whole title: letters only, accents transliterated, codes not
truncated after four characters so long dish names keep their consonant
skeleton ("Butter Chicken" -> B36225).
"""

from __future__ import annotations

from unidecode import unidecode

_SOUNDEX_CODES: dict[str, str] = {}
for _letters, _digit in (
    ("bfpv", "1"),
    ("cgjkqsxz", "2"),
    ("dt", "3"),
    ("l", "4"),
    ("mn", "5"),
    ("r", "6"),
):
    for _ch in _letters:
        _SOUNDEX_CODES[_ch] = _digit


def soundex(text: str | None) -> str:
    """Return the untruncated Soundex key of text, or "" when it has no letters."""
    if not text:
        return ""
    letters = [ch for ch in unidecode(text).lower() if "a" <= ch <= "z"]
    if not letters:
        return ""

    key = [letters[0].upper()]
    last = _SOUNDEX_CODES.get(letters[0], "")
    for ch in letters[1:]:
        if ch in "hw":
            # h and w do not separate consonants with the same code
            continue
        code = _SOUNDEX_CODES.get(ch, "")
        if not code:
            last = ""
            continue
        if code != last:
            key.append(code)
        last = code

    return "".join(key).ljust(4, "0")


def sounds_like(a: str | None, b: str | None) -> bool:
    key_a = soundex(a)
    return bool(key_a) and key_a == soundex(b)
