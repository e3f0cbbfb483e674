import pytest

from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.core.errors import InvalidInput
from timingsign.core.names import Namespace
from timingsign.stats.common.tags import BOOTSTRAP_INTERVAL_TAG, INTERVAL_DECISION_TAG
from timingsign.stats.schemes.timing.bootstrap import (
    BootstrapIntervalStatistic,
    IntervalSignaler,
    get_latest_decision,
    get_latest_statistic,
)
from timingsign.stats.schemes.timing.core import (
    MeasurementBatch,
    TimingObservation,
    check_measurement,
    current_groups,
)
from timingsign.stats.schemes.timing.experiments import TimingBootstrapTemplate


def register(ledger, reference, probe, look=1, **obs_kwargs):
    obs = TimingObservation(**obs_kwargs)
    batch = obs.create_batch()
    batch.add_reference(reference)
    batch.add_probe(probe)
    return obs.register_batch(ledger, "scan#1", f"look-{look}", f"t{look}", batch)


def test_check_measurement():
    assert check_measurement("0.25") == 0.25
    assert check_measurement(0) == 0.0
    for bad in (-1e-9, float("nan"), float("-inf"), "x", None, [1.0]):
        with pytest.raises(InvalidInput):
            check_measurement(bad)


def test_batch_collects_validation_errors():
    batch = MeasurementBatch()
    batch.add_reference([0.1, -2.0])
    batch.add_probe(["oops"])
    assert batch.reference == [0.1]
    assert not batch.validate()
    assert len(batch.validation_errors) == 2
    assert batch.validation_errors[0].startswith("reference:")


def test_register_batch_rules():
    ledger = PolarsLedger()
    assert not register(ledger, [], [])
    assert not register(ledger, [0.1], [])
    assert register(ledger, [0.1], [], require_both_sides=False)
    assert not register(ledger, [0.1, -1.0], [0.2])
    assert ledger.reader().count(namespace="obs") == 1


def test_statistic_refuses_empty_groups(engine):
    ledger = PolarsLedger()
    register(ledger, [0.1], [], require_both_sides=False)
    with pytest.raises(InvalidInput):
        BootstrapIntervalStatistic(engine=engine).step(ledger, "scan#1", "look-1", "t1")
    assert ledger.reader().count(namespace="stats") == 0


def test_statistic_writes_interval(engine):
    ledger = PolarsLedger()
    register(ledger, [0.2, 0.3], [0.2, 0.3])
    stat = BootstrapIntervalStatistic(engine=engine)
    stat.step(ledger, "scan#1", "look-1", "t1")
    payload = get_latest_statistic(ledger, "scan#1")
    assert payload["n_reference"] == payload["n_probe"] == 2
    assert payload["lower"] <= payload["observed_difference"] <= payload["upper"]
    assert payload["rejected"] == stat.last_decision.rejected
    row = ledger.latest(namespace=Namespace.STATS)
    assert (row.tag, row.payload_type) == (BOOTSTRAP_INTERVAL_TAG, "BootstrapInterval")


@pytest.mark.parametrize(
    "reference, probe, action, reason",
    [
        ([9.0] * 4, [1.0] * 4, "stop", "reference_slower"),
        ([1.0] * 4, [9.0] * 4, "stop", "probe_slower"),
        ([1.0] * 4, [1.0] * 4, "continue", "interval_contains_zero"),
    ],
)
def test_signaler_decisions(engine, reference, probe, action, reason):
    ledger = PolarsLedger()
    register(ledger, reference, probe)
    BootstrapIntervalStatistic(engine=engine).step(ledger, "scan#1", "look-1", "t1")
    IntervalSignaler().step(ledger, "scan#1", "look-1", "t1")
    decision = get_latest_decision(ledger, "scan#1")
    assert (decision["action"], decision["reason"]) == (action, reason)
    assert ledger.latest(namespace=Namespace.SIGNALS).tag == INTERVAL_DECISION_TAG


def test_signaler_without_statistic_is_silent():
    ledger = PolarsLedger()
    IntervalSignaler().step(ledger, "scan#1", "look-1", "t1")
    assert get_latest_decision(ledger, "scan#1") is None


def test_template_grows_groups_across_looks(engine):
    template = TimingBootstrapTemplate("scan#1", engine=engine, max_sample_size=6)
    ledger = PolarsLedger()
    template.setup(ledger)
    template.add_observations(reference=[1.0] * 4, probe=[1.0] * 4)
    first = template.analyze()
    template.add_observations(reference=[1.0], probe=[1.0])
    second = template.analyze()
    assert (first.look_number, first.n_reference) == (1, 4)
    assert (second.look_number, second.n_reference) == (2, 5)
    assert second.additional_metrics["reason"] == "interval_contains_zero"
    assert current_groups(ledger, "scan#1")["probe"] == [1.0] * 5

    design = ledger.latest(namespace=Namespace.DESIGN).payload
    assert design["rounds"] == engine.rounds
    assert design["max_sample_size"] == 6

    summary = template.get_summary()
    assert summary["n_reference"] == summary["n_probe"] == 5
    assert summary["current_look"] == 2


def test_template_rejects_invalid_observations(engine):
    template = TimingBootstrapTemplate("scan#1", engine=engine)
    with pytest.raises(RuntimeError):
        template.add_observations(reference=[1.0], probe=[1.0])
    template.setup(PolarsLedger())
    with pytest.raises(ValueError):
        template.analyze()
    with pytest.raises(ValueError):
        template.add_observations(successes=[1])
    with pytest.raises(InvalidInput):
        template.add_observations(reference=[1.0], probe=[-1.0])
    assert template.current_look == 0
