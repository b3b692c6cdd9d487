import textwrap
from collections.abc import Callable, Hashable, Mapping
from pathlib import Path
from typing import Any

import trio
from attrs import define, field

from feat.runner import Implementation, Invocation, Outcome, TestResults
from feat.testcase import TestCase


@define
class FunctionInvoker:
    """Calls plain Python functions in-process, keyed by implementation name."""

    functions: Mapping[str, Callable[..., Any]]
    calls: list[tuple[str, tuple[Any, ...]]] = field(factory=list)

    async def __call__(
        self, implementation: Implementation, fname: str, args: tuple[Any, ...]
    ) -> Invocation:
        await trio.lowlevel.checkpoint()
        self.calls.append((implementation.name, args))
        try:
            return Invocation.returned(self.functions[implementation.name](*args))
        except TimeoutError:
            return Invocation.timed_out(1.0)
        except Exception as e:
            return Invocation.raised(repr(e))


def implementations(*names: str) -> list[Implementation]:
    return [Implementation(name=name, path=f"{name}.py") for name in names]


def write_implementation(directory: Path, name: str, source: str) -> Implementation:
    path = directory / f"{name}.py"
    path.write_text(textwrap.dedent(source).strip() + "\n", encoding="utf-8")
    return Implementation.from_path(str(path))


def results_from_exposures(
    exposures: list[set[Hashable]],
    implementations: list[Hashable] | None = None,
) -> TestResults:
    """Build results where test case ``i`` exposes exactly ``exposures[i]``.

    Exposed pairs are recorded as mismatches, everything else as matches.
    """
    if implementations is None:
        implementations = sorted(set().union(*exposures), key=repr)
    test_cases = [TestCase((i,)) for i in range(len(exposures))]
    outcomes = {
        (tc, impl): Outcome.mismatch if impl in exposed else Outcome.match
        for tc, exposed in zip(test_cases, exposures)
        for impl in implementations
    }
    return TestResults(
        test_cases=test_cases,
        implementations=implementations,
        outcomes=outcomes,
    )
