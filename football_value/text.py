"""
Text normalization shared by the market normalizer and the grader.
"""

import re
import unicodedata
from typing import List

_WHITESPACE = re.compile(r'\s+')
_TOKEN = re.compile(r'[a-z0-9]+')


def strip_diacritics(text: str) -> str:
    """Remove diacritical marks from text (Más -> Mas, Atlético -> Atletico)."""
    nfkd = unicodedata.normalize('NFKD', text)
    return ''.join(c for c in nfkd if not unicodedata.combining(c))


def normalize_text(text: str) -> str:
    """Lowercase, strip diacritics and collapse whitespace."""
    if not text:
        return ''
    normalized = strip_diacritics(text.lower())
    return _WHITESPACE.sub(' ', normalized).strip()


def tokenize(text: str) -> List[str]:
    """Alphanumeric tokens of normalized text ('1X' -> ['1x'], 'over 2.5' -> ['over', '2', '5'])."""
    return _TOKEN.findall(normalize_text(text))
