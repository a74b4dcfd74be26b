"""
Return-generation building blocks.

This module implements:
- Sample moments (mean, volatility, skewness, kurtosis, autocorrelation)
- Three-asset correlation structure and its closed-form Cholesky factor
- Inverse normal CDF, AR(1) persistence, Cornish-Fisher warp and clamps
"""

from regime_bootstrap.returns.moments import AssetMoments, fit_moments, pearson_correlation
from regime_bootstrap.returns.correlation import CorrelationModel, create_uncorrelated_model
from regime_bootstrap.returns.normal import (
    BONDS_BOUNDS,
    INFLATION_BOUNDS,
    STOCKS_BOUNDS,
    ar1_step,
    clamp,
    cornish_fisher,
    inverse_normal_cdf,
    safe_uniform,
)

__all__ = [
    # Moments
    "AssetMoments",
    "fit_moments",
    "pearson_correlation",
    # Correlation
    "CorrelationModel",
    "create_uncorrelated_model",
    # Per-year transforms
    "BONDS_BOUNDS",
    "INFLATION_BOUNDS",
    "STOCKS_BOUNDS",
    "ar1_step",
    "clamp",
    "cornish_fisher",
    "inverse_normal_cdf",
    "safe_uniform",
]
