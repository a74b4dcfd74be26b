"""
K-means clustering with k-means++ seeding.

Samples x_1, …, x_N ∈ ℝ^F (standardized block features) are partitioned into
K clusters by alternating

    assign:    c_i = argmin_k ||x_i - μ_k||²
    recenter:  μ_k = mean{ x_i : c_i = k }

until the assignments stop changing, the largest squared centroid shift drops
below 1e-6, or the iteration cap is reached. A cluster that loses all its
members is reseeded on a random sample instead of being dropped.

Seeding (k-means++): the first centroid is a uniformly random sample; each
further centroid is a sample drawn with probability proportional to its
squared distance from the nearest centroid chosen so far.

All randomness comes from the generator passed in, so a fixed seed gives a
fixed clustering.
"""

from typing import Optional
import numpy as np
from numpy.typing import NDArray

from regime_bootstrap.regimes.quality import ClusterQuality, compute_quality
from regime_bootstrap.seeding import weighted_index

ZERO_SHIFT_THRESHOLD = 1e-6
DEFAULT_MAX_ITERATIONS = 100


class KMeansResult:
    """
    Outcome of one k-means run.

    Attributes
    ----------
    centroids : NDArray[np.float64]
        Cluster centres, shape (K, F).
    assignments : NDArray[np.int64]
        Cluster index of each sample, shape (N,), aligned with the input order.
    converged : bool
        Whether a convergence criterion was met before the iteration cap.
    n_iterations : int
        Number of assign/recenter rounds performed.
    quality : ClusterQuality or None
        Diagnostics; only computed for converged runs.
    """

    def __init__(
        self,
        centroids: NDArray[np.float64],
        assignments: NDArray[np.int64],
        converged: bool,
        n_iterations: int,
        quality: Optional[ClusterQuality] = None
    ) -> None:
        self.centroids = centroids
        self.assignments = assignments
        self.converged = converged
        self.n_iterations = n_iterations
        self.quality = quality

        self.centroids.setflags(write=False)
        self.assignments.setflags(write=False)

    @property
    def n_clusters(self) -> int:
        return self.centroids.shape[0]

    def cluster_sizes(self) -> NDArray[np.int64]:
        """Number of members per cluster, shape (K,)."""
        return np.bincount(self.assignments, minlength=self.n_clusters)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"KMeansResult(n_clusters={self.n_clusters}, converged={self.converged}, "
            f"n_iterations={self.n_iterations})"
        )


def squared_distances(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    Squared Euclidean distance of every sample to every centroid.

    Returns
    -------
    NDArray[np.float64]
        Shape (N, K).
    """
    diff = samples[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sum(diff * diff, axis=-1)


def nearest_centroid(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64]
) -> NDArray[np.int64]:
    """Index of the nearest centroid for each sample (lowest index wins ties)."""
    if centroids.ndim != 2 or centroids.shape[0] == 0:
        raise ValueError("Invalid centroids")
    if samples.shape[-1] != centroids.shape[1]:
        raise ValueError(
            f"Incompatible feature dimensions: samples {samples.shape[-1]}, "
            f"centroids {centroids.shape[1]}"
        )
    return np.argmin(squared_distances(np.atleast_2d(samples), centroids), axis=1).astype(np.int64)


def initial_centroids(
    samples: NDArray[np.float64],
    n_clusters: int,
    rng: np.random.Generator
) -> NDArray[np.float64]:
    """
    k-means++ seeding.

    Parameters
    ----------
    samples : NDArray[np.float64]
        Shape (N, F).
    n_clusters : int
        K
    rng : np.random.Generator
        Source of randomness.

    Returns
    -------
    NDArray[np.float64]
        Initial centroids, shape (K, F).
    """
    n_samples = samples.shape[0]
    centroids = np.zeros((n_clusters, samples.shape[1]))

    centroids[0] = samples[rng.integers(n_samples)]

    for c in range(1, n_clusters):
        min_sq_distance = squared_distances(samples, centroids[:c]).min(axis=1)
        centroids[c] = samples[weighted_index(rng, min_sq_distance)]

    return centroids


def _recenter(
    samples: NDArray[np.float64],
    assignments: NDArray[np.int64],
    n_clusters: int,
    rng: np.random.Generator
) -> NDArray[np.float64]:
    centroids = np.zeros((n_clusters, samples.shape[1]))
    counts = np.bincount(assignments, minlength=n_clusters)
    np.add.at(centroids, assignments, samples)

    for c in range(n_clusters):
        if counts[c] > 0:
            centroids[c] /= counts[c]
        else:
            # Empty cluster: reseed on a random sample
            centroids[c] = samples[rng.integers(samples.shape[0])]

    return centroids


def kmeans(
    samples: NDArray[np.float64],
    n_clusters: int,
    rng: np.random.Generator,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> KMeansResult:
    """
    Cluster samples into `n_clusters` groups.

    Parameters
    ----------
    samples : NDArray[np.float64]
        Feature matrix, shape (N, F).
    n_clusters : int
        Number of clusters K, 1 <= K <= N.
    rng : np.random.Generator
        Source of randomness (seeding and empty-cluster reseeding).
    max_iterations : int
        Iteration cap. Default 100.

    Returns
    -------
    KMeansResult
        Converged or not; quality diagnostics are attached to converged runs.

    Raises
    ------
    ValueError
        If the shapes or K are invalid.
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[0] == 0 or samples.shape[1] == 0:
        raise ValueError(f"samples must be a non-empty (N, F) matrix. Got shape {samples.shape}")
    if not (1 <= n_clusters <= samples.shape[0]):
        raise ValueError(
            f"n_clusters must be in [1, {samples.shape[0]}]. Got {n_clusters}"
        )
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1. Got {max_iterations}")

    centroids = initial_centroids(samples, n_clusters, rng)
    assignments = np.full(samples.shape[0], -1, dtype=np.int64)

    converged = False
    iteration = 0
    while iteration < max_iterations and not converged:
        iteration += 1

        new_assignments = nearest_centroid(samples, centroids)
        if np.array_equal(new_assignments, assignments):
            converged = True
            break
        assignments = new_assignments

        previous = centroids
        centroids = _recenter(samples, assignments, n_clusters, rng)
        shift = np.max(np.sum((centroids - previous) ** 2, axis=1))
        if shift < ZERO_SHIFT_THRESHOLD:
            converged = True
            # Keep assignments consistent with the final centroids
            assignments = nearest_centroid(samples, centroids)

    quality = compute_quality(samples, centroids, assignments) if converged else None
    return KMeansResult(centroids, assignments, converged, iteration, quality)
