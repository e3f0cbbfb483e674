import polars as pl
import pytest
from click.testing import CliRunner

from timingsign.cli import main


def timings(reference, probe):
    return f"{len(reference)}\n{' '.join(map(str, reference))}\n{' '.join(map(str, probe))}\n"


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, args, text):
    return runner.invoke(main, ["--rounds", "500", "--seed", "1", *args], input=text)


def test_equal_timings_exit_zero(runner):
    result = invoke(runner, [], timings([5.0] * 60, [5.0] * 60))
    assert result.exit_code == 0
    assert "Null hypothesis not rejected" in result.output


def test_separated_timings_exit_one(runner):
    result = invoke(runner, [], timings([100.0] * 60, [0.0] * 60))
    assert result.exit_code == 1
    assert "Null hypothesis rejected: blind sql injection highly likely" in result.output


def test_reads_from_file_argument(runner, tmp_path):
    path = tmp_path / "timings.txt"
    path.write_text("# login form\n" + timings([0.5] * 60, [2.0] * 60))
    result = invoke(runner, [str(path)], "")
    assert result.exit_code == 1


def test_too_few_samples_exit_two(runner):
    result = invoke(runner, [], timings([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]))
    assert result.exit_code == 2
    assert "Error: Requested 60 measurements on reference side, only 3 available" in result.output


def test_malformed_input_exit_two(runner):
    result = invoke(runner, [], "2\n0.1 0.2\n0.3\n")
    assert result.exit_code == 2
    assert result.output.startswith("Error:")


def test_smaller_bounds_accept_short_input(runner):
    result = invoke(
        runner, ["--initial-size", "2", "--max-size", "3"], timings([1.0] * 3, [1.0] * 3)
    )
    assert result.exit_code == 0


def test_inconsistent_bounds_are_usage_errors(runner):
    result = invoke(
        runner, ["--initial-size", "8", "--max-size", "4"], timings([1.0] * 8, [1.0] * 8)
    )
    assert result.exit_code == 2
    assert "Maximum sample size" in result.output


@pytest.mark.parametrize("args", [["--alpha", "1.5"], ["--rounds", "0"]])
def test_out_of_range_options(runner, args):
    result = invoke(runner, args, timings([1.0] * 60, [1.0] * 60))
    assert result.exit_code == 2


@pytest.mark.parametrize("suffix", [".parquet", ".csv"])
def test_writes_ledger(runner, tmp_path, suffix):
    out = tmp_path / f"run{suffix}"
    result = invoke(
        runner, ["--ledger-out", str(out), "--max-size", "6"], timings([1.0] * 6, [1.0] * 6)
    )
    assert result.exit_code == 0
    frame = pl.read_parquet(out) if suffix == ".parquet" else pl.read_csv(out)
    assert set(frame["namespace"].to_list()) == {"design", "obs", "stats", "signals", "runtime"}


def test_bad_ledger_suffix(runner, tmp_path):
    result = invoke(
        runner, ["--ledger-out", str(tmp_path / "run.json")], timings([1.0] * 60, [1.0] * 60)
    )
    assert result.exit_code == 2
    assert "Unsupported ledger file suffix" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "timingsign" in result.output
