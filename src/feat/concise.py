"""Reduction of the base test set to a concise one.

Every non-conformant implementation must still be caught by at least one
retained test case. Choosing the fewest such test cases is the minimum
set cover problem, which is NP-hard, so we use the classic greedy
approximation: repeatedly keep the test case that catches the most
implementations not yet caught. Its result is within a factor of H(n)
(the n-th harmonic number) of optimal.

Ties go to the test case that appears first in the base test set, which
makes the result deterministic.
"""

from feat.runner import TestResults
from feat.testcase import TestCase


def set_cover(results: TestResults) -> list[TestCase]:
    """Return a concise test set, in base test set order."""
    uncovered = set(results.non_conformant())
    exposures = [results.exposed_by(tc) for tc in results.test_cases]
    chosen: list[int] = []

    while uncovered:
        best = None
        best_gain = 0
        for i, exposed in enumerate(exposures):
            gain = len(exposed & uncovered)
            # Strictly greater, so the earliest of equally good cases wins.
            if gain > best_gain:
                best = i
                best_gain = gain
        assert best is not None
        chosen.append(best)
        uncovered -= exposures[best]

    return [results.test_cases[i] for i in sorted(chosen)]
