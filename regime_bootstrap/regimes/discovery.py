"""
Market regime discovery.

Historical blocks are described by five features

    x = (CAGR_stocks, CAGR_bonds, MaxDD_stocks, MaxDD_bonds, GMean_inflation)

which are z-scored catalog-wide (population standard deviation; a column
without spread keeps a divisor of 1) and clustered with k-means. Training
runs on every window of one fixed length cut from the history, so that every
sample spans the same horizon; the best of several restarts is kept:

    restart a uses generator(seed, a)
    reject  non-converged restarts
    reject  restarts with a cluster smaller than max(1, ⌊0.05 N⌋)
    keep    the highest silhouette (a later restart wins ties)

Every block of the catalog is then assigned to its nearest centroid, giving
the regime groups the generators sample from.

Each regime gets a parametric profile fitted on the pooled annual
observations of its training blocks, and the transition model counts moves
from block (y, L) to the next non-overlapping block (y + L, L).
"""

import logging
import time
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from regime_bootstrap.errors import InvariantViolation, RegimeDiscoveryError
from regime_bootstrap.history.blocks import Block, extract_blocks, is_chronological
from regime_bootstrap.history.returns import HistoricalSeries
from regime_bootstrap.regimes.kmeans import DEFAULT_MAX_ITERATIONS, KMeansResult, kmeans, nearest_centroid
from regime_bootstrap.regimes.markov import TransitionModel
from regime_bootstrap.regimes.quality import ClusterQuality
from regime_bootstrap.returns.correlation import CorrelationModel
from regime_bootstrap.returns.moments import AssetMoments, fit_moments, pearson_correlation
from regime_bootstrap.seeding import spawn_rng

logger = logging.getLogger(__name__)

CLUSTER_FEATURES = (
    "nominal_cagr_stocks",
    "nominal_cagr_bonds",
    "max_drawdown_stocks",
    "max_drawdown_bonds",
    "gmean_inflation",
)

DEFAULT_DISCOVERY_SEED = 2767
DEFAULT_RESTARTS = 50
DEFAULT_TRAINING_BLOCK_LENGTH = 3
MIN_CLUSTER_FRACTION = 0.05


def feature_matrix(blocks: Sequence[Block]) -> NDArray[np.float64]:
    """Clustering features of each block, shape (N, 5)."""
    return np.array(
        [[getattr(block.features, name) for name in CLUSTER_FEATURES] for block in blocks],
        dtype=np.float64,
    ).reshape(len(blocks), len(CLUSTER_FEATURES))


class Standardization:
    """
    Column-wise z-score transform.

    Attributes
    ----------
    mean : NDArray[np.float64]
        Column means, shape (F,).
    scale : NDArray[np.float64]
        Column population standard deviations, shape (F,); zero spread maps to 1.
    """

    def __init__(self, mean: NDArray[np.float64], scale: NDArray[np.float64]) -> None:
        self.mean = np.asarray(mean, dtype=np.float64)
        self.scale = np.asarray(scale, dtype=np.float64)

        if self.mean.shape != self.scale.shape:
            raise ValueError(f"mean and scale shapes differ: {self.mean.shape} vs {self.scale.shape}")
        if np.any(self.scale <= 0):
            raise ValueError("scale must be positive")

    @classmethod
    def fit(cls, samples: NDArray[np.float64]) -> "Standardization":
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim != 2 or samples.shape[0] == 0:
            raise ValueError(f"Cannot standardize an empty sample. Got shape {samples.shape}")

        scale = samples.std(axis=0)
        scale[scale == 0.0] = 1.0
        return cls(samples.mean(axis=0), scale)

    def transform(self, samples: NDArray[np.float64]) -> NDArray[np.float64]:
        return (np.asarray(samples, dtype=np.float64) - self.mean) / self.scale

    def __repr__(self) -> str:
        """String representation."""
        return f"Standardization(n_features={self.mean.shape[0]})"


class RegimeProfile(NamedTuple):
    """
    Parametric description of one regime.

    Moments per asset plus the three pairwise correlations, already clipped
    into the ranges accepted by the parametric generator.
    """

    stocks: AssetMoments
    bonds: AssetMoments
    inflation: AssetMoments
    stocks_bonds: float
    stocks_inflation: float
    bonds_inflation: float

    def correlation_model(self) -> CorrelationModel:
        return CorrelationModel(self.stocks_bonds, self.stocks_inflation, self.bonds_inflation)


class Regime(NamedTuple):
    """A discovered regime."""

    regime_id: int
    label: str
    profile: RegimeProfile
    n_training_blocks: int


class RegimeSet:
    """
    Outcome of regime discovery.

    Attributes
    ----------
    regimes : Tuple[Regime, ...]
        One entry per regime, indexed by regime id.
    transitions : TransitionModel
        Empirical transition matrix and unconditional distribution.
    standardization : Standardization
        Feature transform used for training.
    centroids : NDArray[np.float64]
        Cluster centres in standardized feature space, shape (K, 5).
    quality : ClusterQuality
        Diagnostics of the winning clustering.
    training_block_length : int
        Length of the blocks the clustering was trained on.
    """

    def __init__(
        self,
        regimes: Sequence[Regime],
        transitions: TransitionModel,
        standardization: Standardization,
        centroids: NDArray[np.float64],
        quality: ClusterQuality,
        training_block_length: int
    ) -> None:
        self.regimes = tuple(regimes)
        self.transitions = transitions
        self.standardization = standardization
        self.centroids = np.array(centroids, dtype=np.float64)
        self.quality = quality
        self.training_block_length = training_block_length

        self.centroids.setflags(write=False)

        if len(self.regimes) != transitions.n_regimes or len(self.regimes) != self.centroids.shape[0]:
            raise InvariantViolation(
                f"Regime count mismatch: {len(self.regimes)} profiles, "
                f"{transitions.n_regimes} transition rows, {self.centroids.shape[0]} centroids"
            )

    @property
    def n_regimes(self) -> int:
        return len(self.regimes)

    @property
    def labels(self) -> List[str]:
        return [regime.label for regime in self.regimes]

    def classify(self, blocks: Sequence[Block]) -> NDArray[np.int64]:
        """Regime id of each block (nearest centroid in standardized space)."""
        if not blocks:
            return np.empty(0, dtype=np.int64)
        return nearest_centroid(self.standardization.transform(feature_matrix(blocks)), self.centroids)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"RegimeSet(n_regimes={self.n_regimes}, labels={self.labels}, "
            f"silhouette={self.quality.silhouette:.3f})"
        )


def train_clusters(
    samples: NDArray[np.float64],
    n_clusters: int,
    seed: int = DEFAULT_DISCOVERY_SEED,
    n_restarts: int = DEFAULT_RESTARTS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> KMeansResult:
    """
    Best-of-N k-means.

    Parameters
    ----------
    samples : NDArray[np.float64]
        Standardized features, shape (N, F).
    n_clusters : int
        K
    seed : int
        Discovery seed; restart a draws from generator(seed, a).
    n_restarts : int
        Number of independent restarts.
    max_iterations : int
        Iteration cap per restart.

    Returns
    -------
    KMeansResult
        The accepted restart with the highest silhouette; on a tie the later
        restart is kept.

    Raises
    ------
    RegimeDiscoveryError
        If no restart converges with every cluster large enough.
    """
    if n_restarts < 1:
        raise ValueError(f"n_restarts must be >= 1. Got {n_restarts}")

    min_size = max(1, int(MIN_CLUSTER_FRACTION * samples.shape[0]))

    best: Optional[KMeansResult] = None
    accepted = 0
    for restart in range(n_restarts):
        result = kmeans(samples, n_clusters, spawn_rng(seed, restart), max_iterations)

        if not result.converged:
            logger.debug(f"Restart {restart} rejected: no convergence after {result.n_iterations} iterations")
            continue

        smallest = int(result.cluster_sizes().min())
        if smallest < min_size:
            logger.debug(f"Restart {restart} rejected: smallest cluster has {smallest} < {min_size} members")
            continue

        accepted += 1
        if best is None or result.quality.silhouette >= best.quality.silhouette:
            best = result

    if best is None:
        raise RegimeDiscoveryError(
            f"K-means found no acceptable clustering into {n_clusters} regimes "
            f"after {n_restarts} restarts"
        )

    logger.info(
        f"K-means: {accepted}/{n_restarts} restarts accepted | "
        f"silhouette {best.quality.silhouette:.3f} | inertia {best.quality.inertia:.3f} | "
        f"{best.n_iterations} iterations"
    )
    return best


def fit_profile(blocks: Sequence[Block]) -> RegimeProfile:
    """
    Fit a regime profile on the pooled annual observations of its blocks.

    Raises
    ------
    ValueError
        If `blocks` is empty.
    """
    if not blocks:
        raise ValueError("Cannot profile a regime without blocks")

    segments = [block.returns for block in blocks]
    pooled = np.concatenate(segments, axis=0)

    return RegimeProfile(
        stocks=fit_moments([s[:, 0] for s in segments]),
        bonds=fit_moments([s[:, 1] for s in segments]),
        inflation=fit_moments([s[:, 2] for s in segments]),
        stocks_bonds=pearson_correlation(pooled[:, 0], pooled[:, 1]),
        stocks_inflation=pearson_correlation(pooled[:, 0], pooled[:, 2]),
        bonds_inflation=pearson_correlation(pooled[:, 1], pooled[:, 2]),
    )


def guess_label(profile: RegimeProfile, regime_id: int) -> str:
    """Human label for display; first matching rule wins."""
    stocks = profile.stocks
    if stocks.mean < -0.10 or stocks.volatility > 0.20:
        return "Crisis"
    if profile.inflation.mean > 0.05 and stocks.mean < 0.02:
        return "Stagflation"
    if stocks.mean > 0.06 and profile.stocks_bonds < 0.0:
        return "Balanced"
    if stocks.mean > 0.10:
        return "Bull"
    if -0.05 < stocks.mean < 0.02:
        return "Stagnation"
    return f"Regime{regime_id}"


def _unique_labels(labels: List[str]) -> List[str]:
    counts: Dict[str, int] = {}
    for label in labels:
        counts[label] = counts.get(label, 0) + 1
    return [f"{label}-{i}" if counts[label] > 1 else label for i, label in enumerate(labels)]


def count_transitions(
    blocks: Sequence[Block],
    assignments: NDArray[np.int64],
    n_regimes: int
) -> NDArray[np.float64]:
    """
    Count regime moves between adjacent, non-overlapping blocks.

    A move is counted from the block starting in year y with length L to the
    block starting in year y + L with the same length, when both are present.

    Returns
    -------
    NDArray[np.float64]
        counts[i, j], shape (K, K).
    """
    if len(blocks) != len(assignments):
        raise ValueError(f"Expected {len(blocks)} assignments, got {len(assignments)}")

    regime_of: Dict[Tuple[int, int], int] = {
        (block.start_year, block.length): int(regime) for block, regime in zip(blocks, assignments)
    }

    counts = np.zeros((n_regimes, n_regimes))
    for block, regime in zip(blocks, assignments):
        following = regime_of.get((block.start_year + block.length, block.length))
        if following is not None:
            counts[regime, following] += 1

    return counts


def discover_regimes(
    history: HistoricalSeries,
    catalog: Sequence[Block],
    n_regimes: int,
    seed: int = DEFAULT_DISCOVERY_SEED,
    training_block_length: int = DEFAULT_TRAINING_BLOCK_LENGTH,
    n_restarts: int = DEFAULT_RESTARTS
) -> RegimeSet:
    """
    Discover market regimes and map the block catalog onto them.

    Parameters
    ----------
    history : HistoricalSeries
        Annual series the training blocks are cut from.
    catalog : Sequence[Block]
        Every historical block, ordered by start year then length.
    n_regimes : int
        Number of regimes K.
    seed : int
        Discovery seed.
    training_block_length : int
        Length of the training blocks. Need not be one of the catalog lengths.
    n_restarts : int
        Number of k-means restarts.

    Returns
    -------
    RegimeSet

    Raises
    ------
    InvariantViolation
        If the catalog is not in chronological order.
    RegimeDiscoveryError
        If there are too few training blocks or no acceptable clustering.
    """
    if not is_chronological(catalog):
        raise InvariantViolation("Blocks are not sorted by start year and length")
    if n_regimes < 1:
        raise ValueError(f"n_regimes must be >= 1. Got {n_regimes}")

    started = time.perf_counter()

    training = extract_blocks(history, [training_block_length])
    if len(training) < n_regimes:
        raise RegimeDiscoveryError(
            f"Need at least {n_regimes} training blocks of length {training_block_length}, "
            f"found {len(training)}"
        )

    standardization = Standardization.fit(feature_matrix(catalog))
    clusters = train_clusters(standardization.transform(feature_matrix(training)), n_regimes, seed, n_restarts)

    assignments = clusters.assignments
    members = [[b for b, r in zip(training, assignments) if r == k] for k in range(n_regimes)]

    profiles = [fit_profile(group) for group in members]
    labels = _unique_labels([guess_label(p, k) for k, p in enumerate(profiles)])
    regimes = [
        Regime(regime_id=k, label=labels[k], profile=profiles[k], n_training_blocks=len(members[k]))
        for k in range(n_regimes)
    ]

    unconditional = clusters.cluster_sizes() / float(len(training))
    transitions = TransitionModel.from_counts(count_transitions(training, assignments, n_regimes), unconditional)

    regime_set = RegimeSet(
        regimes,
        transitions,
        standardization,
        clusters.centroids,
        clusters.quality,
        training_block_length,
    )

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(f"Discovered {n_regimes} regimes {regime_set.labels} | {elapsed_ms:,.0f} ms")
    return regime_set


def group_by_regime(
    catalog: Sequence[Block],
    regime_set: RegimeSet
) -> Tuple[Tuple[Block, ...], ...]:
    """
    Partition the catalog into one group of blocks per regime.

    Raises
    ------
    InvariantViolation
        If a regime ends up without blocks or the groups do not cover the
        catalog exactly.
    """
    assignments = regime_set.classify(catalog)

    groups = tuple(
        tuple(block for block, regime in zip(catalog, assignments) if regime == k)
        for k in range(regime_set.n_regimes)
    )

    if sum(len(group) for group in groups) != len(catalog):
        raise InvariantViolation("Regime groups do not partition the block catalog")

    for k, group in enumerate(groups):
        if not group:
            raise InvariantViolation(f"Regime {k} ({regime_set.regimes[k].label}) has no blocks")

    return groups
