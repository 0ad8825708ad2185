# app/classify/similarity.py
from __future__ import annotations

from typing import Iterable, Sequence


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert/delete/substitute, unit cost), two-row DP."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    """(maxlen - distance) / maxlen, in [0, 1]. Two empty strings are identical."""
    maxlen = max(len(a), len(b))
    if maxlen == 0:
        return 1.0
    return (maxlen - levenshtein(a, b)) / maxlen


def keyword_density(words: Sequence[str], keywords: Iterable[str]) -> float:
    """
    Share of words that hit a family keyword. A word hits when it contains a
    keyword ("smartphones" -> "phone") or, for words of three letters or more,
    is contained in one ("tablet" -> "tablets").
    """
    if not words:
        return 0.0
    kws = tuple(keywords)
    hits = 0
    for word in words:
        if any(kw in word or (len(word) >= 3 and word in kw) for kw in kws):
            hits += 1
    return hits / len(words)
