from __future__ import annotations

"""
Fuzzy brand / product similarity.

Two scores, both in [0, 1] and both computed on ``normalize_text`` output:

* Jaro-Winkler: tolerant of typos and transpositions, rewards a shared
  prefix. Good for short brand names.
* Cosine over character n-grams: insensitive to word order and extra
  words. Product descriptions use the better of the two.
"""

from collections import Counter
from typing import Iterable, List, Optional

import numpy as np

from .config import (
    BRAND_SIMILARITY_THRESHOLD,
    NGRAM_SIZE,
    PRODUCT_SIMILARITY_THRESHOLD,
    WINKLER_PREFIX_MAX,
    WINKLER_SCALE,
)
from .normalize import normalize_text
from .pipeline_types import TextMatch


def _jaro(s1: str, s2: str) -> float:
    window = max(len(s1), len(s2)) // 2 - 1
    if window < 0:
        return 0.0

    s1_hits = [False] * len(s1)
    s2_hits = [False] * len(s2)
    matches = 0

    for i, ch in enumerate(s1):
        lo = max(0, i - window)
        hi = min(i + window + 1, len(s2))
        for j in range(lo, hi):
            if s2_hits[j] or s2[j] != ch:
                continue
            s1_hits[i] = True
            s2_hits[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    # half-transpositions: matched chars compared in order
    half_t = 0
    k = 0
    for i, ch in enumerate(s1):
        if not s1_hits[i]:
            continue
        while not s2_hits[k]:
            k += 1
        if ch != s2[k]:
            half_t += 1
        k += 1

    m = float(matches)
    return (m / len(s1) + m / len(s2) + (m - half_t / 2.0) / m) / 3.0


def jaro_winkler(a: str | None, b: str | None) -> float:
    """Jaro-Winkler similarity of the normalised strings."""
    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    jaro = _jaro(s1, s2)
    if jaro == 0.0:
        return 0.0

    prefix = 0
    for c1, c2 in zip(s1[:WINKLER_PREFIX_MAX], s2[:WINKLER_PREFIX_MAX]):
        if c1 != c2:
            break
        prefix += 1

    return min(1.0, jaro + WINKLER_SCALE * prefix * (1.0 - jaro))


def _ngram_counts(text: str, n: int) -> Counter:
    return Counter(text[i : i + n] for i in range(len(text) - n + 1))


def cosine_ngram(a: str | None, b: str | None, n: int = NGRAM_SIZE) -> float:
    """Cosine of character n-gram frequency vectors over their shared vocabulary."""
    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 1.0
    if not s1 or not s2 or n < 1:
        return 0.0

    grams1 = _ngram_counts(s1, n)
    grams2 = _ngram_counts(s2, n)
    if not grams1 or not grams2:
        return 0.0

    vocab = sorted(set(grams1) | set(grams2))
    v1 = np.array([grams1.get(g, 0) for g in vocab], dtype="float64")
    v2 = np.array([grams2.get(g, 0) for g in vocab], dtype="float64")

    denom = float(np.linalg.norm(v1)) * float(np.linalg.norm(v2))
    if denom == 0.0:
        return 0.0
    return float(min(1.0, np.dot(v1, v2) / denom))


def product_similarity(a: str | None, b: str | None) -> float:
    return max(jaro_winkler(a, b), cosine_ngram(a, b))


def is_brand_similar(a: str | None, b: str | None, threshold: float = BRAND_SIMILARITY_THRESHOLD) -> bool:
    return jaro_winkler(a, b) >= threshold


def is_product_similar(
    a: str | None, b: str | None, threshold: float = PRODUCT_SIMILARITY_THRESHOLD
) -> bool:
    return product_similarity(a, b) >= threshold


def _best(target: str, candidates: Iterable[str], score, threshold: float) -> Optional[TextMatch]:
    best: Optional[TextMatch] = None
    for cand in candidates:
        sim = score(target, cand)
        if sim >= threshold and (best is None or sim > best.similarity):
            best = TextMatch(value=cand, similarity=sim)
    return best


def find_best_brand_match(
    target: str | None,
    candidates: List[str],
    threshold: float = BRAND_SIMILARITY_THRESHOLD,
) -> Optional[TextMatch]:
    """Highest Jaro-Winkler brand at or above ``threshold``; earliest wins ties."""
    if not target:
        return None
    return _best(target, candidates, jaro_winkler, threshold)


def find_best_product_match(
    target: str | None,
    candidates: List[str],
    threshold: float = PRODUCT_SIMILARITY_THRESHOLD,
) -> Optional[TextMatch]:
    if not target:
        return None
    return _best(target, candidates, product_similarity, threshold)
