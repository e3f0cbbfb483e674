"""
timingsign.cli
==============

Command-line entry point.

Reads recorded timings in the plain-text exchange format (see
`timingsign.sources.text`) from a file or stdin, runs the sequential
bootstrap test and reports on stderr. The exit status carries the verdict:

- 0: null hypothesis not rejected
- 1: null hypothesis rejected (timing-based injection highly likely)
- 2: invalid input, insufficient data or bad options

Examples:

    timingsign timings.txt
    collect-timings | timingsign --seed 1 --ledger-out run.parquet -v
"""

from __future__ import annotations
import logging
from typing import IO, Optional

import click
import numpy as np

from timingsign.__version__ import __version__
from timingsign.api.timing_test import BootstrapConfig, injection_check
from timingsign.backends.polars.io import sink_for_path
from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.core.errors import InsufficientData, InvalidInput
from timingsign.reporting.timing import TimingReporter
from timingsign.runtime.runners import INITIAL_SAMPLE_SIZE, MAX_SAMPLE_SIZE
from timingsign.sources.text import parse_samples
from timingsign.stats.common.bootstrap import BOOTSTRAP_ROUNDS, SIGNIFICANCE_ALPHA

logger = logging.getLogger(__name__)

EXIT_NOT_REJECTED = 0
EXIT_REJECTED = 1
EXIT_ERROR = 2


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@click.command()
@click.argument("input_file", metavar="INPUT", type=click.File("r"), default="-")
@click.option(
    "--rounds",
    type=click.IntRange(min=1),
    default=BOOTSTRAP_ROUNDS,
    show_default=True,
    help="Bootstrap resampling rounds per look.",
)
@click.option(
    "--alpha",
    type=click.FloatRange(0, 1, min_open=True, max_open=True),
    default=SIGNIFICANCE_ALPHA,
    show_default=True,
    help="Two-sided significance level.",
)
@click.option(
    "--initial-size",
    type=click.IntRange(min=1),
    default=INITIAL_SAMPLE_SIZE,
    show_default=True,
    help="Measurements per side at the first look.",
)
@click.option(
    "--max-size",
    type=click.IntRange(min=1),
    default=MAX_SAMPLE_SIZE,
    show_default=True,
    help="Measurements per side at the last look.",
)
@click.option("--seed", type=int, default=None, help="Seed for a reproducible run.")
@click.option(
    "--ledger-out",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the run's ledger to a .parquet or .csv file.",
)
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for every look).")
@click.version_option(__version__, prog_name="timingsign")
@click.pass_context
def main(
    ctx: click.Context,
    input_file: IO[str],
    rounds: int,
    alpha: float,
    initial_size: int,
    max_size: int,
    seed: Optional[int],
    ledger_out: Optional[str],
    verbose: int,
) -> None:
    """
    Sequential bootstrap test for blind timing-based injection.

    INPUT holds a sample count n followed by n reference and n probe
    timings ('-' or omitted reads stdin; lines starting with '#' before the
    count are skipped).
    """
    _configure_logging(verbose)

    config = BootstrapConfig(
        rounds=rounds,
        alpha=alpha,
        initial_sample_size=initial_size,
        max_sample_size=max_size,
    )
    try:
        config.validate()
        sink = sink_for_path(ledger_out) if ledger_out else None
    except ValueError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc

    ledger = PolarsLedger()
    rng = np.random.default_rng(seed) if seed is not None else None
    loop = injection_check(config=config, rng=rng, ledger=ledger)

    try:
        source = parse_samples(input_file)
        verdict = loop.run(source)
    except (InvalidInput, InsufficientData) as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(EXIT_ERROR)

    logger.info(TimingReporter(ledger, verdict.experiment_id).summary_text())
    if sink is not None:
        sink.write(ledger.frame())
        logger.info(f"Ledger written to {ledger_out}")

    click.echo(verdict.message, err=True)
    ctx.exit(EXIT_REJECTED if verdict.rejected else EXIT_NOT_REJECTED)


if __name__ == "__main__":  # pragma: no cover
    main()
