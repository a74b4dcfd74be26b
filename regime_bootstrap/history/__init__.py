"""
Historical data: annual observations and overlapping windows.

**Returns (returns.py):**
- Observation and the validated, gap-free HistoricalSeries
- Tabular (CSV / Excel) loader

**Blocks (blocks.py):**
- Overlapping fixed-length windows for every candidate length
- Per-window features (CAGR, real CAGR, drawdown, inflation, 60/40 score)
- Chronological overlap predicate
"""

from regime_bootstrap.history.returns import HistoricalSeries, Observation, load_history
from regime_bootstrap.history.blocks import (
    Block,
    BlockFeatures,
    compute_block_features,
    extract_blocks,
    is_chronological,
    overlaps,
)

__all__ = [
    # Returns
    "HistoricalSeries",
    "Observation",
    "load_history",
    # Blocks
    "Block",
    "BlockFeatures",
    "compute_block_features",
    "extract_blocks",
    "is_chronological",
    "overlaps",
]
