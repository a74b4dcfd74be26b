"""
Market regimes: clustering, quality diagnostics and transition dynamics.

This module implements regime discovery over historical blocks:

**Clustering (kmeans.py, quality.py):**
- k-means with k-means++ seeding and empty-cluster reseeding
- Inertia, silhouette, Davies-Bouldin, Calinski-Harabasz and Dunn indices

**Transition dynamics (markov.py):**
- Empirical regime transition matrix with unconditional fallback
- Smoothing towards the unconditional distribution
- Stationary distribution, expected durations, regime path simulation

**Discovery (discovery.py):**
- Feature standardization and best-of-N training
- Per-regime parametric profiles and display labels
- Partition of the block catalog into regime groups
"""

from regime_bootstrap.regimes.kmeans import KMeansResult, kmeans, nearest_centroid
from regime_bootstrap.regimes.quality import ClusterQuality, compute_quality
from regime_bootstrap.regimes.markov import TransitionModel, create_uniform_transition_model
from regime_bootstrap.regimes.discovery import (
    Regime,
    RegimeProfile,
    RegimeSet,
    Standardization,
    count_transitions,
    discover_regimes,
    feature_matrix,
    fit_profile,
    group_by_regime,
    train_clusters,
)

__all__ = [
    # Clustering
    "KMeansResult",
    "kmeans",
    "nearest_centroid",
    "ClusterQuality",
    "compute_quality",
    # Transitions
    "TransitionModel",
    "create_uniform_transition_model",
    # Discovery
    "Regime",
    "RegimeProfile",
    "RegimeSet",
    "Standardization",
    "count_transitions",
    "discover_regimes",
    "feature_matrix",
    "fit_profile",
    "group_by_regime",
    "train_clusters",
]
