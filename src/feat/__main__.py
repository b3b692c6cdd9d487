"""Main entry point for feat."""

import sys
import time
from collections.abc import Sequence
from datetime import timedelta
from random import Random

import click
import humanize
import trio
from attrs import define

from feat.basegen import BaseSetGenerator, GenerationError
from feat.cli import EnumChoice, default_parallelism, find_candidates, validate_solution
from feat.concise import set_cover
from feat.parse import ConfigFile, InvalidConfigError, load_config
from feat.runner import (
    Implementation,
    ReferenceImplementationError,
    SubprocessInvoker,
    Tester,
    TestResults,
)
from feat.testcase import TestCase
from feat.ui import BasicReport, ReportSink
from feat.work import Volume, WorkContext


@define(frozen=True)
class RunResult:
    config: ConfigFile
    base_test_set: tuple[TestCase, ...]
    results: TestResults
    concise: tuple[TestCase, ...]


def run_pipeline(
    config: ConfigFile,
    reference: Implementation,
    candidates: Sequence[Implementation],
    timeout: float = 1.0,
    parallelism: int = 1,
    seed: int = 0,
    volume: Volume = Volume.normal,
) -> RunResult:
    """Generate, run and reduce a test suite for ``config``."""
    work = WorkContext(random=Random(seed), parallelism=parallelism, volume=volume)

    generator = BaseSetGenerator(config.nodes, config.num_random, random=work.random)
    exhaustive = generator.gen_exhaustive()
    work.debug(f"Exhaustive domains produce {humanize.intcomma(len(exhaustive))} test cases")
    base = generator.gen_base_set(exhaustive)
    work.note(f"Generated {humanize.intcomma(len(base))} base test cases")

    tester = Tester(
        fname=config.fname,
        reference=reference,
        candidates=candidates,
        test_cases=base,
        invoker=SubprocessInvoker(timeout=timeout),
        work=work,
    )
    start = time.monotonic()
    results = trio.run(tester.run_tests)
    work.note(
        f"Ran {humanize.intcomma(len(base) * (len(candidates) + 1))} invocations in "
        f"{humanize.precisedelta(timedelta(seconds=time.monotonic() - start))}"
    )

    return RunResult(
        config=config,
        base_test_set=tuple(base),
        results=results,
        concise=tuple(set_cover(results)),
    )


def generate_tests(
    config_path: str,
    implementation_dir: str,
    solution_path: str,
    **kwargs,
) -> list[TestCase]:
    """Return an approximately minimal test set for the configured function."""
    reference = Implementation.from_path(solution_path)
    candidates = find_candidates(implementation_dir, reference)
    result = run_pipeline(load_config(config_path), reference, candidates, **kwargs)
    return list(result.concise)


@click.command(
    help="""
feat generates a test suite for the function described by CONFIG. It builds
a base test set from the configured type domains, runs it against the
reference implementation SOLUTION and every candidate implementation in
IMPLEMENTATIONS, and prints an approximately minimal subset of test cases
that still catches every candidate that disagrees with the reference.
""".strip()
)
@click.version_option()
@click.option(
    "--timeout",
    default=1.0,
    type=click.FLOAT,
    help=(
        "Time out each invocation after this many seconds. If set to <= 0 then "
        "no timeout will be used. Candidates that time out are recorded as "
        "failing that test case"
    ),
)
@click.option(
    "--parallelism",
    type=click.INT,
    default=0,
    help="Number of invocations to run in parallel. If set to 0 will default to the number of cpus.",
)
@click.option(
    "--seed",
    default=0,
    type=click.INT,
    help="Random seed to use when generating random test cases.",
)
@click.option(
    "--volume",
    default="normal",
    type=EnumChoice(Volume),
    help="Level of output to provide.",
)
@click.argument(
    "config",
    type=click.Path(exists=True, dir_okay=False, allow_dash=False),
)
@click.argument(
    "implementations",
    type=click.Path(exists=True, file_okay=False, allow_dash=False),
)
@click.argument(
    "solution",
    type=click.Path(exists=True, dir_okay=False, allow_dash=False),
    callback=validate_solution,
)
def main(
    config: str,
    implementations: str,
    solution: Implementation,
    timeout: float,
    parallelism: int,
    seed: int,
    volume: Volume,
) -> None:
    if timeout <= 0:
        timeout = float("inf")

    candidates = find_candidates(implementations, solution)

    try:
        parsed = load_config(config)
    except InvalidConfigError as e:
        raise click.ClickException(f"Invalid configuration {config}: {e}") from e

    if volume >= Volume.normal:
        print("Generating concise test set", file=sys.stderr, flush=True)

    try:
        result = run_pipeline(
            parsed,
            solution,
            candidates,
            timeout=timeout,
            parallelism=default_parallelism(parallelism),
            seed=seed,
            volume=volume,
        )
    except (GenerationError, ReferenceImplementationError) as e:
        raise click.ClickException(str(e)) from e

    sink: ReportSink = BasicReport()
    sink.report(parsed.fname, result.concise, result.results)


if __name__ == "__main__":  # pragma: no cover
    main(prog_name="feat")
