"""Reporting of the final concise test set."""

import sys
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TextIO

import humanize
from attrs import define, field

from feat.runner import TestResults
from feat.testcase import TestCase


class ReportSink(ABC):
    """Receives the concise test set once a run has finished."""

    @abstractmethod
    def report(
        self, fname: str, concise: Sequence[TestCase], results: TestResults
    ) -> None: ...


def implementation_name(implementation: object) -> str:
    return getattr(implementation, "name", None) or str(implementation)


@define
class BasicReport(ReportSink):
    """Prints one call per retained test case, followed by a summary."""

    stream: TextIO = field(factory=lambda: sys.stdout)

    def report(
        self, fname: str, concise: Sequence[TestCase], results: TestResults
    ) -> None:
        for test_case in concise:
            print(test_case.call_repr(fname), file=self.stream)

        failing = sorted(map(implementation_name, results.non_conformant()))
        print(
            f"Kept {humanize.intcomma(len(concise))} of "
            f"{humanize.intcomma(len(results.test_cases))} test cases, "
            f"catching {len(failing)} of "
            f"{len(results.implementations)} implementations"
            + (f": {', '.join(failing)}" if failing else ""),
            file=self.stream,
            flush=True,
        )
