# tabclean/stages/normalizer.py
import logging
from typing import Dict, Optional, Sequence

from tabclean.stages.statistics import ColumnStats, compute_table_stats
from tabclean.table import Number, Table

logger = logging.getLogger(__name__)

NORMALIZE_METHODS = ('zscore', 'minmax')


def normalize(table: Table, columns: Sequence[str],
              stats: Optional[Dict[str, Optional[ColumnStats]]] = None) -> Table:
    """Z-score standardise ``columns``: ``(x - mean) / std``.

    Constant columns divide by 1 and come out as all zeros. Columns without
    stats (no values) and Missing cells are left as they are. Apply at most
    once per run: the stats are always those of the table passed in.
    """
    if stats is None:
        stats = compute_table_stats(table, columns)

    replacements = {}
    for name in columns:
        column_stats = stats.get(name)
        if column_stats is None:
            continue

        mean, divisor = column_stats.mean, column_stats.divisor
        replacements[name] = [
            Number((cell.value - mean) / divisor) if isinstance(cell, Number) else cell
            for cell in table.column(name)
        ]
        if column_stats.std_dev == 0:
            logger.info(f"Column '{name}' is constant; normalised to zeros")

    return table.with_columns(replacements) if replacements else table


def min_max_scale(table: Table, columns: Sequence[str]) -> Table:
    """Rescale ``columns`` to ``[0, 1]`` with ``(x - min) / (max - min)``.

    A constant column becomes all zeros. Missing cells pass through.
    """
    replacements = {}
    for name in columns:
        values = table.numbers(name)
        if not values:
            continue

        low, high = min(values), max(values)
        span = high - low
        replacements[name] = [
            Number((cell.value - low) / span if span else 0.0) if isinstance(cell, Number) else cell
            for cell in table.column(name)
        ]

    return table.with_columns(replacements) if replacements else table


def rescale(table: Table, columns: Sequence[str], method: str = 'zscore') -> Table:
    """Apply one of NORMALIZE_METHODS to ``columns``"""
    if method == 'zscore':
        return normalize(table, columns)
    if method == 'minmax':
        return min_max_scale(table, columns)
    raise ValueError(f"Unknown normalisation method: {method}")
