import numpy as np
import pytest

from timingsign.backends.ibis.ledger import IbisLedger, create_test_connection
from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.reporting.generic import LedgerReporter
from timingsign.reporting.timing import TimingReporter
from timingsign.runtime.runners import SequentialDecisionLoop
from timingsign.sources.queue import QueueSampleSource
from timingsign.stats.common.bootstrap import BootstrapTest


@pytest.fixture(params=["polars", "ibis"])
def finished_ledger(request):
    if request.param == "polars":
        ledger = PolarsLedger()
    else:
        ledger = IbisLedger(create_test_connection("duckdb"), "scan")
    loop = SequentialDecisionLoop(
        engine=BootstrapTest(rounds=300, rng=np.random.default_rng(8)),
        initial_sample_size=3,
        max_sample_size=6,
        ledger=ledger,
        experiment_id="scan#1",
    )
    loop.run(QueueSampleSource.from_values([1.0] * 6, [1.0] * 6))
    return ledger


def test_generic_reporter(finished_ledger):
    rep = LedgerReporter(finished_ledger)
    assert rep.unique_entities() == ["scan#1"]
    assert rep.unique_namespaces() == ["design", "obs", "runtime", "signals", "stats"]
    assert "decision" in rep.unique_kinds()

    counts = rep.namespace_kind_counts().to_pandas()
    by_key = {(r["namespace"], r["kind"]): r["count"] for r in counts.to_dict("records")}
    assert by_key[("obs", "observation")] == 4
    assert by_key[("stats", "updated")] == 4
    assert by_key[("runtime", "start")] == by_key[("runtime", "stop")] == 1


def test_trajectory(finished_ledger):
    traj = TimingReporter(finished_ledger, "scan#1").trajectory()
    assert traj["look"].to_list() == [1, 2, 3, 4]
    assert traj["n_probe"].to_list() == [3, 4, 5, 6]
    assert not any(traj["rejected"].to_list())


def test_verdict_and_summary(finished_ledger):
    rep = TimingReporter(finished_ledger, "scan#1")
    assert rep.verdict() == {"outcome": "not_rejected", "sample_count": 6, "looks": 4}
    text = rep.summary_text()
    assert text.startswith("scan#1: not_rejected after 4 look(s)")
    assert "n=6/6" in text


def test_empty_experiment():
    rep = TimingReporter(PolarsLedger(), "missing")
    assert rep.trajectory().height == 0
    assert rep.verdict() is None
    assert rep.summary_text() == "missing: no looks recorded"
