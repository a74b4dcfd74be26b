"""
Moving block bootstrap.

A scenario is built by replaying random historical blocks, drawn uniformly
with replacement, until the horizon is filled (the last block may be cut
short):

    scenario = B_1 ⊕ B_2 ⊕ … ⊕ B_m,   B_j ~ U(catalog)

Back-to-back extremes: when enabled, a freshly drawn block is redrawn if it
overlaps the previously accepted block in calendar years and both are
disasters (score <= P10) or both are jackpots (score >= P90). After
MAX_REDRAWS redraws the last draw is accepted and counted as forced.

Regime-aware variant: blocks come from the group of the active regime; after
each block the next regime is drawn from the smoothed transition row

    P̃(i, ·) = λ P(i, ·) + (1 - λ) π

starting from a regime drawn from π.
"""

from typing import Optional, Tuple

import numpy as np

from regime_bootstrap.history.blocks import Block, overlaps
from regime_bootstrap.seeding import weighted_index
from regime_bootstrap.simulation.contracts import (
    RandomScenarioSource,
    SamplingCounters,
    SamplingStats,
    Scenario,
)
from regime_bootstrap.simulation.snapshot import RankingThresholds, SnapshotProvider

MAX_REDRAWS = 100


def draw_block(
    rng: np.random.Generator,
    blocks: Tuple[Block, ...],
    previous: Optional[Block],
    thresholds: Optional[RankingThresholds],
    max_redraws: int = MAX_REDRAWS
) -> Tuple[Block, int, int, bool]:
    """
    Draw one block, redrawing back-to-back overlapping extremes.

    Parameters
    ----------
    rng : np.random.Generator
        Iteration generator.
    blocks : Tuple[Block, ...]
        Candidates (uniform, with replacement).
    previous : Block or None
        Last accepted block.
    thresholds : RankingThresholds or None
        Extreme cut-offs; None disables rejection.
    max_redraws : int
        Redraw cap.

    Returns
    -------
    block : Block
        Accepted block.
    n_overlaps : int
        Draws that overlapped `previous`.
    n_rejections : int
        Draws that were rejected.
    forced : bool
        True if the cap was hit and the last draw accepted anyway.
    """
    n_overlaps = 0
    n_rejections = 0

    candidate = blocks[rng.integers(len(blocks))]
    while True:
        if previous is None or not overlaps(previous, candidate):
            return candidate, n_overlaps, n_rejections, False

        n_overlaps += 1
        if thresholds is None or not thresholds.is_extreme_pair(previous, candidate):
            return candidate, n_overlaps, n_rejections, False

        if n_rejections >= max_redraws:
            return candidate, n_overlaps, n_rejections, True

        n_rejections += 1
        candidate = blocks[rng.integers(len(blocks))]


class MovingBlockBootstrapper(RandomScenarioSource):
    """
    Replays random blocks of the whole historical catalog.

    Parameters
    ----------
    provider : SnapshotProvider
        Shared market snapshot.
    seed : int
        Global seed.
    avoid_extreme_repeats : bool
        Redraw overlapping back-to-back disasters or jackpots.
    counters : SamplingCounters, optional
        Caller-owned aggregate diagnostics.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        seed: int,
        avoid_extreme_repeats: bool = True,
        counters: Optional[SamplingCounters] = None
    ) -> None:
        super().__init__(seed, counters)
        self.provider = provider
        self.avoid_extreme_repeats = avoid_extreme_repeats

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        snapshot = self.provider.get()
        rng = self.rng_for(iteration)
        thresholds = snapshot.thresholds if self.avoid_extreme_repeats else None

        returns = np.empty((n_years, 3))
        stats = [0, 0, 0, 0]        # blocks, overlaps, rejections, forced

        previous: Optional[Block] = None
        filled = 0
        while filled < n_years:
            block, n_overlaps, n_rejections, forced = draw_block(rng, snapshot.catalog, previous, thresholds)

            take = min(block.length, n_years - filled)
            returns[filled:filled + take] = block.returns[:take]
            filled += take
            previous = block

            stats[0] += 1
            stats[1] += n_overlaps
            stats[2] += n_rejections
            stats[3] += int(forced)

        return Scenario(returns, iteration, SamplingStats(*stats))

    def describe(self) -> str:
        history = self.provider.history
        sizes = ",".join(str(size) for size in self.provider.options.block_sizes)
        text = f"Moving block bootstrap using random [{sizes}]-year blocks from {history.min_year} to {history.max_year}"
        return text + (" (no back to back extremes)" if self.avoid_extreme_repeats else "")


class RegimeAwareMovingBlockBootstrapper(RandomScenarioSource):
    """
    Replays random blocks while following historical regime transitions.

    Parameters
    ----------
    provider : SnapshotProvider
        Shared market snapshot; must be built with regimes.
    seed : int
        Global seed.
    regime_awareness : float
        λ in [0, 1]; 0 is memoryless, 1 follows the empirical chain.
    counters : SamplingCounters, optional
        Caller-owned aggregate diagnostics.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        seed: int,
        regime_awareness: float = 0.5,
        counters: Optional[SamplingCounters] = None
    ) -> None:
        super().__init__(seed, counters)
        if not (0.0 <= regime_awareness <= 1.0):
            raise ValueError(f"regime_awareness must be in [0, 1]. Got {regime_awareness}")

        self.provider = provider
        self.regime_awareness = regime_awareness

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        snapshot = self.provider.get()
        regime_set = snapshot.require_regimes()
        groups = snapshot.regime_groups

        rng = self.rng_for(iteration)
        transitions = regime_set.transitions.smoothed(self.regime_awareness)

        returns = np.empty((n_years, 3))
        n_blocks = 0
        n_switches = 0

        regime = weighted_index(rng, regime_set.transitions.unconditional)
        filled = 0
        while filled < n_years:
            eligible = groups[regime]
            block = eligible[rng.integers(len(eligible))]

            take = min(block.length, n_years - filled)
            returns[filled:filled + take] = block.returns[:take]
            filled += take
            n_blocks += 1

            if filled < n_years:
                following = weighted_index(rng, transitions[regime])
                n_switches += int(following != regime)
                regime = following

        return Scenario(returns, iteration, SamplingStats(blocks_sampled=n_blocks, regime_switches=n_switches))

    def describe(self) -> str:
        history = self.provider.history
        sizes = "/".join(str(size) for size in self.provider.options.block_sizes)
        return (
            f"Random historical sequence using {sizes}-year moving blocks from "
            f"{history.min_year} to {history.max_year} | Regime awareness: {self.regime_awareness:.0%}"
        )
