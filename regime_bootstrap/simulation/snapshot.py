"""
Immutable market snapshot shared by all iterations.

Everything the resampling sources need that does not depend on the
iteration is computed once:

    catalog       every historical block, chronological
    thresholds    disaster = P10, jackpot = P90 of block ranking scores
    regimes       discovered regimes and their block groups (optional)

`SnapshotProvider` builds the snapshot on first use under a lock
(check, lock, check again), then hands out the same object to every caller
without locking.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np

from regime_bootstrap.config import BootstrapOptions
from regime_bootstrap.errors import InvariantViolation
from regime_bootstrap.history.blocks import Block, extract_blocks, is_chronological
from regime_bootstrap.history.returns import HistoricalSeries
from regime_bootstrap.regimes.discovery import (
    DEFAULT_DISCOVERY_SEED,
    RegimeSet,
    discover_regimes,
    group_by_regime,
)

logger = logging.getLogger(__name__)

DISASTER_PERCENTILE = 10.0
JACKPOT_PERCENTILE = 90.0


class RankingThresholds(NamedTuple):
    """Cut-offs on the block ranking score."""

    disaster: float
    jackpot: float

    def is_extreme_pair(self, previous: Block, following: Block) -> bool:
        """True if both blocks are disasters, or both are jackpots."""
        a, b = previous.ranking_score, following.ranking_score
        return (a <= self.disaster and b <= self.disaster) or (a >= self.jackpot and b >= self.jackpot)


def ranking_thresholds(
    blocks: Sequence[Block],
    low: float = DISASTER_PERCENTILE,
    high: float = JACKPOT_PERCENTILE
) -> RankingThresholds:
    """Percentile cut-offs of the ranking scores (values taken from the sample)."""
    if not blocks:
        raise ValueError("Cannot compute thresholds without blocks")

    scores = np.array([block.ranking_score for block in blocks])
    return RankingThresholds(
        disaster=float(np.percentile(scores, low, method="lower")),
        jackpot=float(np.percentile(scores, high, method="lower")),
    )


@dataclass(frozen=True, eq=False)
class MarketSnapshot:
    """
    Shared, read-only market data.

    Attributes
    ----------
    history : HistoricalSeries
        Source series.
    catalog : Tuple[Block, ...]
        All blocks, ordered by start year then length.
    thresholds : RankingThresholds
        Disaster and jackpot cut-offs.
    regime_set : RegimeSet or None
        Discovered regimes; None when regimes were not requested.
    regime_groups : Tuple[Tuple[Block, ...], ...]
        Catalog partitioned by regime; empty when regimes were not requested.
    """

    history: HistoricalSeries
    catalog: Tuple[Block, ...]
    thresholds: RankingThresholds
    regime_set: Optional[RegimeSet] = None
    regime_groups: Tuple[Tuple[Block, ...], ...] = ()

    @property
    def has_regimes(self) -> bool:
        return self.regime_set is not None

    def require_regimes(self) -> RegimeSet:
        if self.regime_set is None:
            raise InvariantViolation("Market snapshot was built without regimes")
        return self.regime_set


def build_snapshot(
    history: HistoricalSeries,
    options: BootstrapOptions,
    with_regimes: bool = False,
    regime_discovery_seed: int = DEFAULT_DISCOVERY_SEED
) -> MarketSnapshot:
    """
    Extract blocks, thresholds and (optionally) regimes.

    Parameters
    ----------
    history : HistoricalSeries
        Validated annual series.
    options : BootstrapOptions
        Block sizes and regime settings.
    with_regimes : bool
        Run regime discovery and partition the catalog by regime.
    regime_discovery_seed : int
        Seed of the clustering restarts.

    Returns
    -------
    MarketSnapshot
    """
    started = time.perf_counter()

    catalog = tuple(extract_blocks(history, options.block_sizes))
    if not catalog:
        raise InvariantViolation(
            f"No blocks of lengths {options.block_sizes} fit {len(history)} years of history"
        )
    if not is_chronological(catalog):
        raise InvariantViolation("Block catalog is not sorted by start year and length")

    thresholds = ranking_thresholds(catalog)

    regime_set = None
    groups: Tuple[Tuple[Block, ...], ...] = ()
    if with_regimes:
        regime_set = discover_regimes(
            history,
            catalog,
            options.n_regimes,
            seed=regime_discovery_seed,
            training_block_length=options.training_block_length,
        )
        groups = group_by_regime(catalog, regime_set)

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        f"Market snapshot: {len(catalog)} blocks {list(options.block_sizes)} from "
        f"{history.min_year} to {history.max_year} | disaster <= {thresholds.disaster:.2%} | "
        f"jackpot >= {thresholds.jackpot:.2%} | {elapsed_ms:,.0f} ms"
    )

    return MarketSnapshot(history, catalog, thresholds, regime_set, groups)


class SnapshotProvider:
    """
    Lazily builds one `MarketSnapshot` and shares it.

    Safe under concurrent first access; after the first build `get()` does
    not lock.
    """

    def __init__(
        self,
        history: HistoricalSeries,
        options: BootstrapOptions,
        with_regimes: bool = False,
        regime_discovery_seed: int = DEFAULT_DISCOVERY_SEED
    ) -> None:
        self.history = history
        self.options = options
        self.with_regimes = with_regimes
        self.regime_discovery_seed = regime_discovery_seed

        self._lock = threading.Lock()
        self._snapshot: Optional[MarketSnapshot] = None

    @property
    def is_built(self) -> bool:
        return self._snapshot is not None

    def get(self) -> MarketSnapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._lock:
            if self._snapshot is None:
                self._snapshot = build_snapshot(
                    self.history,
                    self.options,
                    with_regimes=self.with_regimes,
                    regime_discovery_seed=self.regime_discovery_seed,
                )
            return self._snapshot

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SnapshotProvider(years={self.history.min_year}-{self.history.max_year}, "
            f"with_regimes={self.with_regimes}, built={self.is_built})"
        )
