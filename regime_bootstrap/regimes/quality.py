"""
Cluster quality diagnostics.

For samples x_i with assignments c_i and centroids μ_k (Euclidean distance d):

Inertia (within-cluster sum of squares):
    W_k = Σ_{c_i = k} d(x_i, μ_k)²,    W = Σ_k W_k

Silhouette of sample i, with a(i) the mean distance to the other members of
its own cluster and b(i) the smallest mean distance to another cluster:
    s(i) = (b(i) - a(i)) / max(a(i), b(i))
Members of singleton clusters score 0. The overall score is the mean of s(i).

Davies-Bouldin (lower is better), with S_k the mean member-to-centroid
distance of cluster k:
    DBI = (1/K) Σ_k max_{j≠k} (S_k + S_j) / d(μ_k, μ_j)

Calinski-Harabasz (higher is better):
    CH = [B / (K - 1)] / [W / (N - K)],   B = Σ_k n_k d(μ_k, x̄)²

Dunn (higher is better):
    D = min inter-cluster point distance / max intra-cluster diameter

Undefined cases (one cluster, N <= K, zero denominators) report 0.
"""

from typing import NamedTuple, Tuple
import numpy as np
from numpy.typing import NDArray


class ClusterQuality(NamedTuple):
    """Quality metrics of one clustering."""

    inertia: float
    silhouette: float
    davies_bouldin: float
    calinski_harabasz: float
    dunn: float
    cluster_inertia: Tuple[float, ...]
    cluster_silhouette: Tuple[float, ...]


def pairwise_distances(samples: NDArray[np.float64]) -> NDArray[np.float64]:
    """Euclidean distance matrix, shape (N, N)."""
    diff = samples[:, np.newaxis, :] - samples[np.newaxis, :, :]
    return np.sqrt(np.sum(diff * diff, axis=-1))


def cluster_inertia(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64],
    assignments: NDArray[np.int64]
) -> NDArray[np.float64]:
    """Within-cluster sum of squared distances, shape (K,)."""
    sq = np.sum((samples - centroids[assignments]) ** 2, axis=1)
    return np.bincount(assignments, weights=sq, minlength=centroids.shape[0])


def silhouette_samples(
    distances: NDArray[np.float64],
    assignments: NDArray[np.int64],
    n_clusters: int
) -> NDArray[np.float64]:
    """
    Silhouette score of every sample.

    Parameters
    ----------
    distances : NDArray[np.float64]
        Pairwise distance matrix, shape (N, N).
    assignments : NDArray[np.int64]
        Cluster index per sample.
    n_clusters : int
        K

    Returns
    -------
    NDArray[np.float64]
        s(i) in [-1, 1], shape (N,).
    """
    n_samples = distances.shape[0]
    counts = np.bincount(assignments, minlength=n_clusters)

    # Sum of distances from each sample to each cluster, shape (N, K)
    one_hot = np.zeros((n_samples, n_clusters))
    one_hot[np.arange(n_samples), assignments] = 1.0
    totals = distances @ one_hot

    scores = np.zeros(n_samples)
    for i in range(n_samples):
        own = assignments[i]
        if counts[own] <= 1:
            continue

        a = totals[i, own] / (counts[own] - 1)
        others = [totals[i, k] / counts[k] for k in range(n_clusters) if k != own and counts[k] > 0]
        if not others:
            continue

        b = min(others)
        denominator = max(a, b)
        scores[i] = (b - a) / denominator if denominator > 0.0 else 0.0

    return scores


def davies_bouldin(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64],
    assignments: NDArray[np.int64]
) -> float:
    n_clusters = centroids.shape[0]
    if n_clusters < 2:
        return 0.0

    counts = np.bincount(assignments, minlength=n_clusters)
    member_distance = np.sqrt(np.sum((samples - centroids[assignments]) ** 2, axis=1))
    scatter = np.bincount(assignments, weights=member_distance, minlength=n_clusters)
    scatter = np.divide(scatter, counts, out=np.zeros(n_clusters), where=counts > 0)

    total = 0.0
    for i in range(n_clusters):
        worst = 0.0
        for j in range(n_clusters):
            if i == j:
                continue
            separation = float(np.linalg.norm(centroids[i] - centroids[j]))
            if separation > 0.0:
                worst = max(worst, (scatter[i] + scatter[j]) / separation)
        total += worst

    return total / n_clusters


def calinski_harabasz(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64],
    assignments: NDArray[np.int64]
) -> float:
    n_samples = samples.shape[0]
    n_clusters = centroids.shape[0]
    if n_clusters <= 1 or n_samples <= n_clusters:
        return 0.0

    counts = np.bincount(assignments, minlength=n_clusters)
    grand_mean = samples.mean(axis=0)

    between = float(np.sum(counts * np.sum((centroids - grand_mean) ** 2, axis=1)))
    within = float(np.sum((samples - centroids[assignments]) ** 2))
    if within <= 0.0:
        return 0.0

    return (between / (n_clusters - 1)) / (within / (n_samples - n_clusters))


def dunn_index(distances: NDArray[np.float64], assignments: NDArray[np.int64]) -> float:
    same = assignments[:, np.newaxis] == assignments[np.newaxis, :]
    off_diagonal = ~np.eye(distances.shape[0], dtype=bool)

    intra = distances[same & off_diagonal]
    inter = distances[~same]
    if inter.size == 0:
        return 0.0

    max_diameter = float(intra.max()) if intra.size else 0.0
    if max_diameter <= 0.0:
        return 0.0

    return float(inter.min()) / max_diameter


def compute_quality(
    samples: NDArray[np.float64],
    centroids: NDArray[np.float64],
    assignments: NDArray[np.int64]
) -> ClusterQuality:
    """
    All quality metrics of a clustering.

    Parameters
    ----------
    samples : NDArray[np.float64]
        Shape (N, F).
    centroids : NDArray[np.float64]
        Shape (K, F).
    assignments : NDArray[np.int64]
        Shape (N,), values in [0, K).

    Returns
    -------
    ClusterQuality
    """
    samples = np.asarray(samples, dtype=np.float64)
    assignments = np.asarray(assignments, dtype=np.int64)
    n_clusters = centroids.shape[0]

    if samples.shape[0] != assignments.shape[0]:
        raise ValueError(
            f"Expected {samples.shape[0]} assignments, got {assignments.shape[0]}"
        )

    inertia = cluster_inertia(samples, centroids, assignments)
    distances = pairwise_distances(samples)
    scores = silhouette_samples(distances, assignments, n_clusters)

    counts = np.bincount(assignments, minlength=n_clusters)
    per_cluster = np.bincount(assignments, weights=scores, minlength=n_clusters)
    per_cluster = np.divide(per_cluster, counts, out=np.zeros(n_clusters), where=counts > 0)

    return ClusterQuality(
        inertia=float(inertia.sum()),
        silhouette=float(scores.mean()) if scores.size else 0.0,
        davies_bouldin=davies_bouldin(samples, centroids, assignments),
        calinski_harabasz=calinski_harabasz(samples, centroids, assignments),
        dunn=dunn_index(distances, assignments),
        cluster_inertia=tuple(float(v) for v in inertia),
        cluster_silhouette=tuple(float(v) for v in per_cluster),
    )
