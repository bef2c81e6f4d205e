"""Correspondence between the elements of two repeated fields."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from .models import RepeatedFieldComparison

logger = logging.getLogger(__name__)

# score(actual_index, expected_index) -> number of differences, 0 when equal
ScoreFunction = Callable[[int, int], int]


@dataclass
class MatchResult:
    """Pairing of actual and expected element indices."""
    pairs: list[tuple[int, int]] = field(default_factory=list)
    unmatched_actual: list[int] = field(default_factory=list)
    unmatched_expected: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pairs": [list(p) for p in self.pairs],
            "unmatched_actual": self.unmatched_actual,
            "unmatched_expected": self.unmatched_expected,
        }


class RepeatedFieldMatcher:
    """
    Pairs elements of an actual and an expected repeated field.

    Ordered mode pairs by position. Unordered mode first finds a maximum set
    of pairs that compare equal (augmenting paths, lowest indices first), then
    pairs the leftovers greedily by ascending difference score, breaking ties
    by lowest actual index and then lowest expected index. Elements left over
    on the longer side stay unmatched.
    """

    def __init__(self, mode: RepeatedFieldComparison = RepeatedFieldComparison.ORDERED):
        self.mode = mode

    def match(
        self,
        actual_count: int,
        expected_count: int,
        score: ScoreFunction,
    ) -> MatchResult:
        """
        Compute the pairing.

        Args:
            actual_count: Number of elements in the actual field
            expected_count: Number of elements in the expected field
            score: Difference score for a candidate pair (unordered mode only)

        Returns:
            MatchResult with pairs sorted by expected index
        """
        if self.mode == RepeatedFieldComparison.UNORDERED:
            return self._match_unordered(actual_count, expected_count, score)
        return self._match_ordered(actual_count, expected_count)

    def _match_ordered(self, actual_count: int, expected_count: int) -> MatchResult:
        common = min(actual_count, expected_count)
        return MatchResult(
            pairs=[(i, i) for i in range(common)],
            unmatched_actual=list(range(common, actual_count)),
            unmatched_expected=list(range(common, expected_count)),
        )

    def _match_unordered(
        self,
        actual_count: int,
        expected_count: int,
        score: ScoreFunction,
    ) -> MatchResult:
        scores = [
            [score(i, j) for j in range(expected_count)]
            for i in range(actual_count)
        ]

        candidates = [
            [j for j in range(expected_count) if scores[i][j] == 0]
            for i in range(actual_count)
        ]
        actual_to_expected = _max_exact_matching(candidates, expected_count)

        # Greedy pairing of what is left, cheapest difference first.
        free_actual = [i for i in range(actual_count) if i not in actual_to_expected]
        taken_expected = set(actual_to_expected.values())
        free_expected = [j for j in range(expected_count) if j not in taken_expected]

        remaining = sorted(
            (scores[i][j], i, j) for i in free_actual for j in free_expected
        )
        for _, i, j in remaining:
            if i in actual_to_expected or j in taken_expected:
                continue
            actual_to_expected[i] = j
            taken_expected.add(j)

        pairs = sorted(
            ((i, j) for i, j in actual_to_expected.items()),
            key=lambda pair: pair[1],
        )
        logger.debug("Unordered pairing (actual, expected): %s", pairs)

        return MatchResult(
            pairs=pairs,
            unmatched_actual=[i for i in range(actual_count) if i not in actual_to_expected],
            unmatched_expected=[j for j in range(expected_count) if j not in taken_expected],
        )


def _max_exact_matching(candidates: list[list[int]], expected_count: int) -> dict[int, int]:
    """
    Maximum bipartite matching over equal-comparing pairs.

    Args:
        candidates: For each actual index, the expected indices it equals
        expected_count: Number of expected elements

    Returns:
        Mapping of actual index to expected index
    """
    expected_owner = [-1] * expected_count
    actual_to_expected: dict[int, int] = {}

    for start, options in enumerate(candidates):
        if not options:
            continue

        # Breadth-first search for an augmenting path from ``start``.
        reached_from: dict[int, int] = {}
        queue = deque([start])
        free_end = -1
        while queue and free_end < 0:
            current = queue.popleft()
            for j in candidates[current]:
                if j in reached_from:
                    continue
                reached_from[j] = current
                if expected_owner[j] == -1:
                    free_end = j
                    break
                queue.append(expected_owner[j])

        if free_end < 0:
            continue

        j = free_end
        while True:
            owner = reached_from[j]
            previous = actual_to_expected.get(owner)
            expected_owner[j] = owner
            actual_to_expected[owner] = j
            if owner == start:
                break
            j = previous

    return actual_to_expected
