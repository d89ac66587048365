"""Lexical relevance scoring for picking one product out of a candidate set."""
from typing import Any, Optional, Sequence

from .rules import WEAK_TERMS, content_tokens
from ..utils.normalize import to_float

WEAK_WEIGHT = 1
STRONG_WEIGHT = 4
NAME_FACTOR = 2
DESCRIPTION_FACTOR = 1
TOKEN_SCALE = 10


def _field(doc: Any, key: str):
    if isinstance(doc, dict):
        return doc.get(key)
    return getattr(doc, key, None)


def score(document: Any, query: str) -> float:
    """Score a {name, description, rating} document against a free-text query.

    Each content token is worth 1 if generic, 4 otherwise; a name hit counts
    double a description hit. The rating is added after scaling so it only
    breaks ties between documents with the same token score.
    """
    name = str(_field(document, "name") or "").lower()
    description = str(_field(document, "description") or "").lower()
    rating = to_float(_field(document, "rating")) or 0.0

    token_score = 0
    for tok in content_tokens(query):
        weight = WEAK_WEIGHT if tok in WEAK_TERMS else STRONG_WEIGHT
        if tok in name:
            token_score += NAME_FACTOR * weight
        if tok in description:
            token_score += DESCRIPTION_FACTOR * weight
    return token_score * TOKEN_SCALE + rating


def pick_best(candidates: Sequence[Any], query: str) -> Optional[Any]:
    """Return the single highest-scoring candidate; the first one seen wins ties."""
    best = None
    best_score = None
    for cand in candidates:
        s = score(cand, query)
        if best_score is None or s > best_score:
            best, best_score = cand, s
    return best


def resolve(candidates: Sequence[Any], query: str) -> Optional[Any]:
    """Best candidate, but only when the query gives lexical evidence for it.

    A lone candidate always resolves. With several candidates and no token hit
    on any of them (e.g. a category fallback), nothing resolves and the caller
    should ask which one was meant.
    """
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]
    best = pick_best(candidates, query)
    rating = to_float(_field(best, "rating")) or 0.0
    return best if score(best, query) - rating > 0 else None
