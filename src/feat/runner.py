"""Running implementations against the base test set.

The reference implementation is run once per test case to produce the
expected output (the oracle). Every candidate implementation is then run
against every test case and each run is classified as an Outcome. Each
run happens in its own subprocess with a wall-clock timeout, so a
candidate that crashes, hangs, or corrupts its interpreter only ever
affects its own result.

How an implementation is actually called is delegated to an Invoker.
SubprocessInvoker is the real one; tests substitute in-process invokers.
"""

import os
import subprocess
import sys
from collections.abc import Hashable, Mapping, Sequence
from enum import Enum, auto
from tempfile import TemporaryDirectory
from typing import Any, Protocol

import trio
from attrs import define, field

from feat.process import terminate
from feat.protocol import deserialize_reply, serialize_request
from feat.testcase import TestCase, values_equal
from feat.work import WorkContext


@define(frozen=True)
class Implementation:
    """A Python source file that defines the function under test."""

    name: str
    path: str

    @classmethod
    def from_path(cls, path: str) -> "Implementation":
        return cls(name=os.path.splitext(os.path.basename(path))[0], path=path)


def discover_implementations(
    directory: str, exclude: Sequence[str] = ()
) -> list[Implementation]:
    """Every ``.py`` file directly inside ``directory``, sorted by name."""
    excluded = {os.path.realpath(p) for p in exclude}
    result = []
    for entry in sorted(os.listdir(directory)):
        path = os.path.join(directory, entry)
        if (
            entry.endswith(".py")
            and entry != "__init__.py"
            and os.path.isfile(path)
            and os.path.realpath(path) not in excluded
        ):
            result.append(Implementation.from_path(path))
    return result


class InvocationStatus(Enum):
    returned = auto()
    raised = auto()
    timed_out = auto()


@define(frozen=True)
class Invocation:
    """What happened when an implementation was called once."""

    status: InvocationStatus
    value: Any = None
    detail: str = ""

    @classmethod
    def returned(cls, value: Any) -> "Invocation":
        return cls(InvocationStatus.returned, value=value)

    @classmethod
    def raised(cls, detail: str) -> "Invocation":
        return cls(InvocationStatus.raised, detail=detail)

    @classmethod
    def timed_out(cls, timeout: float) -> "Invocation":
        return cls(InvocationStatus.timed_out, detail=f"Timed out after {timeout}s")


class Invoker(Protocol):
    async def __call__(
        self, implementation: Implementation, fname: str, args: tuple[Any, ...]
    ) -> Invocation: ...


@define
class SubprocessInvoker:
    """Calls implementations in a fresh ``feat.worker`` subprocess each time.

    Each call gets its own temporary working directory and its own
    process group, which is interrupted and then killed if the call runs
    longer than ``timeout`` seconds.
    """

    timeout: float = 1.0
    python: str = sys.executable

    async def __call__(
        self, implementation: Implementation, fname: str, args: tuple[Any, ...]
    ) -> Invocation:
        with TemporaryDirectory(prefix="feat-") as d:
            reply_path = os.path.join(d, "reply.json")
            command = [
                self.python,
                "-m",
                "feat.worker",
                os.path.abspath(implementation.path),
                fname,
                reply_path,
            ]
            kwargs: dict[str, Any] = {
                "stdin": serialize_request(args).encode("utf-8"),
                "stdout": subprocess.DEVNULL,
                "stderr": subprocess.DEVNULL,
                "preexec_fn": os.setsid,
                "cwd": d,
                "check": False,
            }

            async with trio.open_nursery() as nursery:

                def call_with_kwargs(task_status=trio.TASK_STATUS_IGNORED):  # type: ignore
                    return trio.run_process(command, **kwargs, task_status=task_status)

                sp = await nursery.start(call_with_kwargs)

                with trio.move_on_after(self.timeout):
                    await sp.wait()

                if sp.returncode is None:
                    await terminate(sp)
                    return Invocation.timed_out(self.timeout)

            return read_reply(reply_path, sp.returncode)


def read_reply(reply_path: str, returncode: int) -> Invocation:
    try:
        with open(reply_path, encoding="utf-8") as reader:
            reply = deserialize_reply(reader.read())
    except FileNotFoundError:
        return Invocation.raised(f"Exited with status {returncode} without replying")
    except (ValueError, TypeError) as e:
        return Invocation.raised(f"Unreadable reply: {e}")
    if reply.error is not None:
        return Invocation.raised(reply.error)
    if returncode != 0:
        return Invocation.raised(f"Exited with status {returncode}")
    return Invocation.returned(reply.result)


class Outcome(Enum):
    match = auto()
    mismatch = auto()
    error = auto()
    timeout = auto()


def classify(invocation: Invocation, expected: Any) -> Outcome:
    match invocation.status:
        case InvocationStatus.timed_out:
            return Outcome.timeout
        case InvocationStatus.raised:
            return Outcome.error
        case _:
            if values_equal(invocation.value, expected):
                return Outcome.match
            return Outcome.mismatch


class ReferenceImplementationError(Exception):
    """The reference implementation failed, so there is no oracle to compare to."""

    def __init__(self, test_case: TestCase, invocation: Invocation):
        self.test_case = test_case
        self.invocation = invocation
        super().__init__(
            f"Reference implementation failed on {test_case!r} "
            f"({invocation.status.name}): {invocation.detail}"
        )


@define(frozen=True)
class TestResults:
    """The outcome of every (test case, implementation) pair.

    Implementations are identified by any hashable value; the Tester uses
    Implementation instances.
    """

    __test__ = False

    test_cases: tuple[TestCase, ...] = field(converter=tuple)
    implementations: tuple[Hashable, ...] = field(converter=tuple)
    outcomes: Mapping[tuple[TestCase, Hashable], Outcome]
    expected: Mapping[TestCase, Any] = field(factory=dict)
    details: Mapping[tuple[TestCase, Hashable], str] = field(factory=dict)

    def outcome(self, test_case: TestCase, implementation: Hashable) -> Outcome:
        return self.outcomes[(test_case, implementation)]

    def exposed_by(self, test_case: TestCase) -> frozenset[Hashable]:
        """The implementations this test case catches out."""
        return frozenset(
            impl
            for impl in self.implementations
            if self.outcome(test_case, impl) is not Outcome.match
        )

    def non_conformant(self) -> frozenset[Hashable]:
        return frozenset().union(*map(self.exposed_by, self.test_cases))


@define
class Tester:
    __test__ = False

    fname: str
    reference: Implementation
    candidates: Sequence[Implementation] = field(converter=tuple)
    test_cases: Sequence[TestCase] = field(converter=tuple)
    invoker: Invoker = field(factory=SubprocessInvoker)
    work: WorkContext = field(factory=WorkContext)
    expected: dict[TestCase, Any] | None = field(default=None, init=False)

    async def compute_expected_results(self) -> dict[TestCase, Any]:
        """Run the reference on every test case.

        Raises ReferenceImplementationError if it fails on any of them.
        """

        async def call_reference(test_case: TestCase) -> Invocation:
            return await self.invoker(self.reference, self.fname, test_case.args)

        invocations = await self.work.map(self.test_cases, call_reference)

        expected = {}
        for test_case, invocation in zip(self.test_cases, invocations):
            if invocation.status is not InvocationStatus.returned:
                raise ReferenceImplementationError(test_case, invocation)
            expected[test_case] = invocation.value
        self.expected = expected
        self.work.verbose(
            f"Computed expected results for {len(expected)} test cases "
            f"using {self.reference.name}"
        )
        return expected

    async def run_tests(self) -> TestResults:
        if self.expected is None:
            await self.compute_expected_results()
        expected = self.expected
        assert expected is not None

        units = [(tc, impl) for tc in self.test_cases for impl in self.candidates]

        async def run_unit(unit: tuple[TestCase, Implementation]) -> Invocation:
            test_case, implementation = unit
            return await self.invoker(implementation, self.fname, test_case.args)

        invocations = await self.work.map(units, run_unit)

        outcomes = {}
        details = {}
        for unit, invocation in zip(units, invocations):
            outcome = classify(invocation, expected[unit[0]])
            outcomes[unit] = outcome
            if outcome is not Outcome.match:
                details[unit] = invocation.detail
                self.work.debug(
                    f"{unit[1].name} on {unit[0].call_repr(self.fname)}: {outcome.name}"
                )

        return TestResults(
            test_cases=self.test_cases,
            implementations=self.candidates,
            outcomes=outcomes,
            expected=expected,
            details=details,
        )
