"""Set-overlap similarity between keyword/entity fingerprints."""

from __future__ import annotations

from collections.abc import Iterable


def jaccard_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two string collections, in [0, 1].

    Two empty fingerprints are treated as identical (1.0); exactly one empty
    fingerprint scores 0.0.
    """
    set_a = set(a)
    set_b = set(b)
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)
