"""Unit tests for Jaccard similarity."""

import pytest

from storythreads.similarity import jaccard_similarity


class TestJaccardSimilarity:
    def test_both_empty_is_identical(self) -> None:
        assert jaccard_similarity([], []) == 1.0

    def test_one_empty_is_disjoint(self) -> None:
        assert jaccard_similarity([], ["x"]) == 0.0
        assert jaccard_similarity(["x"], []) == 0.0

    def test_self_similarity(self) -> None:
        assert jaccard_similarity(["fed", "rates"], ["rates", "fed"]) == 1.0

    def test_partial_overlap(self) -> None:
        # {a, b} & {b, c} = {b}; union = {a, b, c}
        assert jaccard_similarity(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)

    def test_duplicates_ignored(self) -> None:
        assert jaccard_similarity(["a", "a", "b"], ["a", "b"]) == 1.0

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            (["fed", "rates"], ["fed"]),
            (["x"], ["y"]),
            (["nvda", "earnings", "beat"], ["earnings", "miss", "nvda", "guidance"]),
        ],
    )
    def test_symmetric_and_bounded(self, a: list[str], b: list[str]) -> None:
        forward = jaccard_similarity(a, b)
        assert forward == jaccard_similarity(b, a)
        assert 0.0 <= forward <= 1.0
