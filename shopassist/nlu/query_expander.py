"""Query expansion with the domain synonym table."""
from typing import List

from .rules import MIN_TOKEN_LENGTH, STOP_WORDS, SYNONYMS, tokenize

MAX_TOKENS = 12


def expand(query: str, max_tokens: int = MAX_TOKENS) -> List[str]:
    """Expand a raw query into an ordered, de-duplicated token list.

    Base tokens (length >= 3, stop words removed, first ``max_tokens``
    distinct ones) come first, followed by every synonym of any table entry a
    base token belongs to. The result is truncated to ``max_tokens`` in
    insertion order. An empty list means there is nothing to search for.
    """
    base: List[str] = []
    for tok in tokenize(query or ""):
        if len(tok) >= MIN_TOKEN_LENGTH and tok not in STOP_WORDS and tok not in base:
            base.append(tok)
        if len(base) >= max_tokens:
            break

    expanded = list(base)
    seen = set(base)
    for tok in base:
        for words in SYNONYMS.values():
            if tok in words:
                for w in words:
                    if w not in seen:
                        seen.add(w)
                        expanded.append(w)
    return expanded[:max_tokens]
