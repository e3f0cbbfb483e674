import numpy as np
import pytest

from timingsign.api.timing_test import (
    SENSITIVITY_ALPHA,
    BootstrapConfig,
    fixed_sample_test,
    injection_check,
    run_injection_check,
)
from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.core.errors import InsufficientData
from timingsign.runtime.runners import Outcome
from timingsign.sources.queue import QueueSampleSource


def test_default_config():
    config = BootstrapConfig()
    assert (config.rounds, config.alpha) == (10_000, 0.01)
    assert (config.initial_sample_size, config.max_sample_size) == (4, 60)
    config.validate()


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"alpha": 0.0}, "Alpha"),
        ({"rounds": 0}, "Rounds"),
        ({"initial_sample_size": 0}, "Initial sample size"),
        ({"initial_sample_size": 10, "max_sample_size": 5}, "Maximum sample size"),
    ],
)
def test_config_validation(kwargs, message):
    with pytest.raises(ValueError, match=message):
        BootstrapConfig(**kwargs).validate()


@pytest.mark.parametrize("sensitivity", ["conservative", "balanced", "sensitive"])
def test_sensitivity_presets(sensitivity):
    loop = injection_check(sensitivity=sensitivity)
    assert loop.engine.alpha == SENSITIVITY_ALPHA[sensitivity]
    assert loop.engine.rounds == 10_000


def test_explicit_config_wins_over_sensitivity():
    loop = injection_check(sensitivity="sensitive", config=BootstrapConfig(alpha=0.02))
    assert loop.engine.alpha == 0.02


def test_injection_check_runs_on_any_source():
    loop = injection_check(
        "login_form",
        config=BootstrapConfig(rounds=500),
        rng=np.random.default_rng(0),
        ledger=PolarsLedger(),
    )
    verdict = loop.run(QueueSampleSource.from_values([0.3] * 60, [0.3] * 60))
    assert verdict.outcome is Outcome.NOT_REJECTED
    assert verdict.experiment_id == "login_form"


def test_run_injection_check_records_into_given_ledger():
    ledger = PolarsLedger()
    verdict = run_injection_check(
        [0.1] * 60,
        [0.9] * 60,
        config=BootstrapConfig(rounds=500),
        rng=np.random.default_rng(0),
        ledger=ledger,
        experiment_id="search_box",
    )
    assert verdict.rejected
    assert ledger.collect_measurements(experiment_id="search_box")["probe"] == [0.9] * 4


def test_run_injection_check_needs_full_sample():
    with pytest.raises(InsufficientData):
        run_injection_check([0.1] * 10, [0.1] * 10, config=BootstrapConfig(rounds=100))


def test_fixed_sample_test_uses_every_measurement():
    decision = fixed_sample_test(
        [0.2, 0.25, 0.22, 0.3, 0.21],
        [0.9, 0.8, 0.95],
        config=BootstrapConfig(rounds=1000),
        rng=np.random.default_rng(4),
    )
    assert decision.rejected
    assert (decision.n_reference, decision.n_probe) == (5, 3)
    assert decision.direction == "probe_slower"
