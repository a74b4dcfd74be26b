"""
Error types.

Two families only:

**Fatal (startup) errors** are raised while history, configuration or the
regime model are being prepared. Nothing is simulated once one of these has
been raised; there is no degraded mode.

**Invariant violations** signal a defect in this package (for example regime
groups that do not partition the block catalog). They are never corrected
silently.
"""


class BootstrapError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(BootstrapError, ValueError):
    """Out-of-range or malformed configuration."""


class HistoryError(BootstrapError, ValueError):
    """Historical series is empty, unsorted or has missing years."""


class RegimeDiscoveryError(BootstrapError, RuntimeError):
    """Clustering could not produce an acceptable set of regimes."""


class InvariantViolation(BootstrapError, RuntimeError):
    """Internal consistency check failed."""
