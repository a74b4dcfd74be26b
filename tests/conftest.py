"""
Shared fixtures.

The synthetic history alternates calm, inflationary and crash periods so that
regime discovery has structure to find, and is generated from a fixed seed so
every test sees the same data.
"""

import numpy as np
import pytest

from regime_bootstrap.config import BootstrapOptions
from regime_bootstrap.history.returns import HistoricalSeries
from regime_bootstrap.simulation.snapshot import SnapshotProvider

# (stocks mean, stocks vol, bonds mean, bonds vol, inflation mean, inflation vol)
_PERIODS = [
    (0.12, 0.10, 0.04, 0.03, 0.02, 0.01),   # calm growth
    (-0.15, 0.20, 0.05, 0.05, 0.01, 0.02),  # crash
    (0.02, 0.12, -0.02, 0.06, 0.09, 0.03),  # stagflation
    (0.08, 0.15, 0.06, 0.04, 0.03, 0.01),   # balanced
]


def make_history(n_years: int = 96, start_year: int = 1926, seed: int = 7) -> HistoricalSeries:
    """Deterministic synthetic annual history."""
    rng = np.random.default_rng(seed)
    records = []
    for offset in range(n_years):
        sm, sv, bm, bv, im, iv = _PERIODS[(offset // 6) % len(_PERIODS)]
        records.append((
            start_year + offset,
            float(np.clip(rng.normal(sm, sv), -0.55, 0.55)),
            float(np.clip(rng.normal(bm, bv), -0.12, 0.22)),
            float(np.clip(rng.normal(im, iv), -0.05, 0.20)),
        ))
    return HistoricalSeries.from_records(records)


@pytest.fixture(scope="session")
def history() -> HistoricalSeries:
    return make_history()


@pytest.fixture
def concrete_history() -> HistoricalSeries:
    return HistoricalSeries.from_records([
        (2000, 0.10, 0.04, 0.02),
        (2001, -0.05, 0.03, 0.03),
        (2002, 0.08, 0.02, 0.01),
        (2003, -0.12, 0.05, 0.04),
        (2004, 0.15, 0.01, 0.02),
    ])


@pytest.fixture(scope="session")
def regime_options() -> BootstrapOptions:
    return BootstrapOptions(block_sizes=(3, 4, 5), n_regimes=3, regime_awareness=0.5)


@pytest.fixture(scope="session")
def regime_provider(history, regime_options) -> SnapshotProvider:
    return SnapshotProvider(history, regime_options, with_regimes=True)


@pytest.fixture(scope="session")
def plain_provider(history) -> SnapshotProvider:
    return SnapshotProvider(history, BootstrapOptions())
