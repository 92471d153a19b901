# tabclean/stages/statistics.py
"""Per-column summary statistics shared by every numeric stage.

Quartiles use the lower-index convention: after sorting the ``n`` non-missing
values, Q1 is the element at ``floor(0.25 * (n - 1))`` and Q3 the element at
``floor(0.75 * (n - 1))``. No interpolation is done, so both quartiles are
always observed values. Standard deviation is the population one (ddof=0).
"""
import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional, Sequence

import numpy as np

from tabclean.table import Table

DEFAULT_IQR_MULTIPLIER = 1.5


@dataclass(frozen=True)
class ColumnStats:
    """Summary of the non-missing values of one numeric column"""
    count: int
    mean: float
    q1: float
    q3: float
    iqr: float
    lower_bound: float
    upper_bound: float
    std_dev: float

    @property
    def midpoint(self) -> float:
        """Replacement value for outliers"""
        return (self.q1 + self.q3) / 2

    @property
    def divisor(self) -> float:
        """Standard deviation to divide by; 1 for a constant column"""
        return self.std_dev if self.std_dev > 0 else 1.0

    def is_outlier(self, value: float) -> bool:
        return value < self.lower_bound or value > self.upper_bound

    def to_dict(self) -> dict:
        return asdict(self)


def quartile_index(n: int, fraction: float) -> int:
    """0-based index of a quartile in ``n`` sorted values"""
    return int(math.floor(fraction * (n - 1)))


def compute_stats(values: Sequence[float], iqr_multiplier: float = DEFAULT_IQR_MULTIPLIER) -> Optional[ColumnStats]:
    """Compute ColumnStats for a column's non-missing values.

    Returns None when there are no values; callers skip such columns.
    The input sequence is never reordered.
    """
    data = np.asarray(values, dtype=float)
    n = data.size
    if n == 0:
        return None

    ordered = np.sort(data)
    q1 = float(ordered[quartile_index(n, 0.25)])
    q3 = float(ordered[quartile_index(n, 0.75)])
    iqr = q3 - q1

    # Exact zero for constant columns instead of rounding noise
    if ordered[0] == ordered[-1]:
        mean = float(ordered[0])
        std_dev = 0.0
    else:
        mean = float(data.mean())
        std_dev = float(data.std())

    return ColumnStats(
        count=int(n),
        mean=mean,
        q1=q1,
        q3=q3,
        iqr=iqr,
        lower_bound=q1 - iqr_multiplier * iqr,
        upper_bound=q3 + iqr_multiplier * iqr,
        std_dev=std_dev,
    )


def compute_table_stats(table: Table, columns: Iterable[str],
                        iqr_multiplier: float = DEFAULT_IQR_MULTIPLIER) -> Dict[str, Optional[ColumnStats]]:
    """Fresh stats for each named column of ``table``"""
    return {name: compute_stats(table.numbers(name), iqr_multiplier) for name in columns}
