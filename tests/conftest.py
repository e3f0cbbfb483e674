import numpy as np
import pytest

from timingsign.backends.polars.ledger import PolarsLedger
from timingsign.stats.common.bootstrap import BootstrapTest


@pytest.fixture
def rng():
    return np.random.default_rng(20240917)


@pytest.fixture
def ledger():
    return PolarsLedger()


@pytest.fixture
def engine(rng):
    return BootstrapTest(rounds=2000, alpha=0.01, rng=rng)
