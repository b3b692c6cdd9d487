"""Parallelism coordination and progress reporting.

WorkContext carries the settings every stage of a run shares: the random
number generator used for test generation, how many invocations may run
at once, and how much to report. Running a test suite is embarrassingly
parallel: every (test case, implementation) pair is independent, so
``map`` simply keeps a fixed number of workers busy and puts results back
in input order.
"""

import sys
from collections.abc import Awaitable, Callable, Sequence
from enum import IntEnum
from random import Random
from typing import TypeVar

import trio


class Volume(IntEnum):
    """Logging verbosity levels."""

    quiet = 0
    normal = 1
    verbose = 2
    debug = 3


S = TypeVar("S")
T = TypeVar("T")


class WorkContext:
    def __init__(
        self,
        random: Random | None = None,
        parallelism: int = 1,
        volume: Volume = Volume.normal,
    ):
        self.random = random or Random(0)
        self.parallelism = max(parallelism, 1)
        self.volume = volume

    async def map(self, ls: Sequence[T], f: Callable[[T], Awaitable[S]]) -> list[S]:
        """Apply ``f`` to every element of ``ls`` with at most ``parallelism``
        calls in flight, returning the results in the order of ``ls``.

        If any call raises, the remaining calls are cancelled and the
        exception propagates.
        """
        results: list[S | None] = [None] * len(ls)
        work = list(enumerate(ls))
        work.reverse()

        async with trio.open_nursery() as nursery:
            for _ in range(min(self.parallelism, len(work))):

                @nursery.start_soon
                async def do_work() -> None:
                    while work:
                        i, x = work.pop()
                        results[i] = await f(x)

        return results  # type: ignore[return-value]

    def warn(self, msg: str) -> None:
        self.report(msg, Volume.normal)

    def note(self, msg: str) -> None:
        self.report(msg, Volume.normal)

    def verbose(self, msg: str) -> None:
        self.report(msg, Volume.verbose)

    def debug(self, msg: str) -> None:
        self.report(msg, Volume.debug)

    def report(self, msg: str, level: Volume) -> None:
        if level <= self.volume:
            print(msg, file=sys.stderr, flush=True)
