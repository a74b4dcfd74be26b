"""
Annual historical returns.

A historical series is an ordered, gap-free collection of annual observations:

    o_y = (y, r^S_y, r^B_y, π_y)        y = y_min, …, y_max

where r^S and r^B are the nominal stocks and bonds returns for year y and π is
the inflation rate, all expressed as fractions (0.07 = 7%).

Contract (checked once, on construction):
    - the series is not empty
    - len(series) == y_max - y_min + 1   (no missing and no duplicate years)
    - every return is finite and greater than -1 (a loss of 100% or more
      leaves nothing to compound)

The tabular loader reads a sheet whose first row is a header and whose first
four columns are year, stocks, bonds and inflation. Rows that do not parse as
numbers are skipped.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from regime_bootstrap.errors import HistoryError

logger = logging.getLogger(__name__)


class Observation(NamedTuple):
    """Market performance for one calendar year."""

    year: int
    stocks: float
    bonds: float
    inflation: float


_COLUMNS = ("stocks", "bonds", "inflation")


def _check_values(ordered: Sequence[Observation], returns: NDArray[np.float64]) -> None:
    bad = ~np.isfinite(returns) | (returns <= -1.0)
    if not bad.any():
        return

    row, column = (int(i) for i in np.argwhere(bad)[0])
    observation = ordered[row]
    raise HistoryError(
        f"Invalid historical data | {_COLUMNS[column]} in {observation.year} is "
        f"{float(returns[row, column])} (must be finite and greater than -1)"
    )


class HistoricalSeries:
    """
    Chronologically ordered, gap-free annual observations.

    Attributes
    ----------
    observations : Tuple[Observation, ...]
        Observations sorted by year.
    min_year : int
        First year of the series.
    max_year : int
        Last year of the series.
    """

    def __init__(self, observations: Iterable[Observation]) -> None:
        """
        Initialize and validate a historical series.

        Parameters
        ----------
        observations : Iterable[Observation]
            Annual observations in any order.

        Raises
        ------
        HistoryError
            If the series is empty, has missing/duplicate years, or holds a
            non-finite return or one at or below -100%.
        """
        ordered = sorted(
            (Observation(int(o[0]), float(o[1]), float(o[2]), float(o[3])) for o in observations),
            key=lambda o: o.year,
        )

        if not ordered:
            raise HistoryError("Invalid historical data | Series is empty")

        expected = ordered[-1].year - ordered[0].year + 1
        if len(ordered) != expected:
            raise HistoryError(
                f"Invalid historical data | {len(ordered)} observations for "
                f"{ordered[0].year}-{ordered[-1].year} (expected {expected})"
            )

        self.observations: Tuple[Observation, ...] = tuple(ordered)
        self.min_year: int = ordered[0].year
        self.max_year: int = ordered[-1].year

        returns = np.array([(o.stocks, o.bonds, o.inflation) for o in ordered], dtype=np.float64)
        _check_values(ordered, returns)
        returns.setflags(write=False)
        self._returns = returns

    @classmethod
    def from_records(
        cls,
        records: Iterable[Sequence[Union[int, float]]]
    ) -> "HistoricalSeries":
        """Build a series from (year, stocks, bonds, inflation) tuples."""
        return cls(Observation(*record) for record in records)

    def as_array(self) -> NDArray[np.float64]:
        """
        Returns as a read-only array.

        Returns
        -------
        NDArray[np.float64]
            Shape (n_years, 3); columns are stocks, bonds, inflation.
        """
        return self._returns

    @property
    def years(self) -> List[int]:
        return [o.year for o in self.observations]

    def __len__(self) -> int:
        return len(self.observations)

    def __getitem__(self, index: int) -> Observation:
        return self.observations[index]

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"HistoricalSeries(n_years={len(self)}, "
            f"min_year={self.min_year}, max_year={self.max_year})"
        )


def load_history(
    path: Union[str, Path],
    sheet_name: Optional[str] = None
) -> HistoricalSeries:
    """
    Load historical returns from a CSV or Excel file.

    Parameters
    ----------
    path : str or Path
        `.csv`, `.xlsx` or `.xls` file. The first row is a header.
    sheet_name : str, optional
        Excel sheet to read. Defaults to the first sheet.

    Returns
    -------
    HistoricalSeries
        Validated series.

    Raises
    ------
    HistoryError
        If the file cannot be read, has fewer than four columns, or the
        parsed series violates the series contract.
    """
    path = Path(path)

    try:
        if path.suffix.lower() in (".xlsx", ".xls"):
            frame = pd.read_excel(path, sheet_name=sheet_name if sheet_name is not None else 0)
        else:
            frame = pd.read_csv(path)
    except (OSError, ValueError) as exc:
        raise HistoryError(f"Unable to read historical data from {path.name}: {exc}") from exc

    if frame.shape[1] < 4:
        raise HistoryError(
            f"Invalid historical data | {path.name} has {frame.shape[1]} columns, expected 4"
        )

    # year, stocks, bonds, inflation; rows that do not parse are skipped
    values = frame.iloc[:, :4].apply(pd.to_numeric, errors="coerce").dropna()

    series = HistoricalSeries(
        Observation(int(row[0]), float(row[1]), float(row[2]), float(row[3]))
        for row in values.itertuples(index=False, name=None)
    )

    logger.info(
        f"Read {len(series)} years of historical returns from {path.name} "
        f"({series.min_year} to {series.max_year})"
    )
    return series
