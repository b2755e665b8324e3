import re
import string
from typing import Iterable, List, Optional

from .models import Product

EXACT = 3
QUERY_IN_TITLE = 2
TITLE_IN_QUERY = 1

# Shortest substring that counts as a deliberate reference to a product.
MIN_SIGNIFICANT_LENGTH = 3

_STRIP_CHARS = string.whitespace + string.punctuation + "“”‘’"


def normalize(text: Optional[str]) -> str:
    t = (text or "").casefold()
    t = " ".join(t.split())
    return t.strip(_STRIP_CHARS)


def _contains_phrase(haystack: str, needle: str) -> bool:
    """True when needle occurs in haystack on word boundaries."""
    pattern = r"(?<!\w)" + re.escape(needle) + r"(?!\w)"
    return re.search(pattern, haystack) is not None


def match_strength(query: str, title: str) -> int:
    """Strength of the match between two already-normalized strings (0 = none)."""
    if not query or not title:
        return 0
    if query == title:
        return EXACT
    if len(query) >= MIN_SIGNIFICANT_LENGTH and _contains_phrase(title, query):
        return QUERY_IN_TITLE
    if len(title) >= MIN_SIGNIFICANT_LENGTH and _contains_phrase(query, title):
        return TITLE_IN_QUERY
    return 0


def find_exact_product(query: str, products: Iterable[Product]) -> Optional[Product]:
    """Return the single product the query unambiguously names, or None.
    Only the strongest match level present is considered; two or more candidates
    at that level count as ambiguous and yield no match.
    """
    q = normalize(query)
    if not q:
        return None
    best = 0
    candidates: List[Product] = []
    for p in products:
        if not p.is_active:
            continue
        strength = match_strength(q, normalize(p.title))
        if strength == 0 or strength < best:
            continue
        if strength > best:
            best = strength
            candidates = []
        candidates.append(p)
    if len(candidates) == 1:
        return candidates[0]
    return None
