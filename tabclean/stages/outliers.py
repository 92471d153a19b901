# tabclean/stages/outliers.py
"""IQR based outlier resolution.

Two policies exist and a run uses exactly one of them:

``replace``
    Every cell strictly outside ``[lower_bound, upper_bound]`` becomes the
    column midpoint ``(q1 + q3) / 2``. Replacing values can tighten the
    quartiles, so passes repeat on fresh stats until one finds nothing. After
    the call, recomputing bounds on the result yields no outliers, unless
    ``max_passes`` ran out first; the result then has ``converged=False``.
    ``affected`` counts distinct cells, however many passes touched them.

``drop``
    Bounds are computed once and every row holding an outlier in any numeric
    column is removed.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from tabclean.config import OUTLIER_POLICIES
from tabclean.stages.statistics import DEFAULT_IQR_MULTIPLIER, ColumnStats, compute_table_stats
from tabclean.table import Number, Table

logger = logging.getLogger(__name__)


@dataclass
class OutlierResult:
    table: Table
    policy: str
    affected: int  # distinct cells under 'replace', rows under 'drop'
    passes: int = 0
    converged: bool = True
    affected_per_column: Dict[str, int] = field(default_factory=dict)


def find_outliers(table: Table, stats: Dict[str, Optional[ColumnStats]]) -> Dict[str, List[int]]:
    """Row indexes of out-of-bound numeric cells, per column"""
    found: Dict[str, List[int]] = {}

    for name, column_stats in stats.items():
        if column_stats is None:
            continue
        indexes = [
            index for index, cell in enumerate(table.column(name))
            if isinstance(cell, Number) and column_stats.is_outlier(cell.value)
        ]
        if indexes:
            found[name] = indexes

    return found


def _replace_pass(table: Table, stats: Dict[str, Optional[ColumnStats]],
                  outliers: Dict[str, List[int]]) -> Table:
    replacements = {}
    for name, indexes in outliers.items():
        cells = table.column(name)
        midpoint = Number(stats[name].midpoint)
        for index in indexes:
            cells[index] = midpoint
        replacements[name] = cells
    return table.with_columns(replacements)


def resolve_outliers(table: Table, columns: Sequence[str], policy: str = 'replace',
                     stats: Optional[Dict[str, Optional[ColumnStats]]] = None,
                     iqr_multiplier: float = DEFAULT_IQR_MULTIPLIER,
                     max_passes: int = 50) -> OutlierResult:
    """Neutralise outliers in ``columns`` according to ``policy``.

    ``stats`` are the stats of ``table`` as given (computed after imputation);
    they are computed here when not supplied.
    """
    if policy not in OUTLIER_POLICIES:
        raise ValueError(f"Unknown outlier policy: {policy}")

    if stats is None:
        stats = compute_table_stats(table, columns, iqr_multiplier)

    if policy == 'drop':
        return _drop_outlier_rows(table, stats)

    replaced: Dict[str, Set[int]] = {}
    passes = 0
    converged = False

    while passes < max_passes:
        outliers = find_outliers(table, stats)
        if not outliers:
            converged = True
            break

        passes += 1
        for name, indexes in outliers.items():
            replaced.setdefault(name, set()).update(indexes)
        table = _replace_pass(table, stats, outliers)
        stats = compute_table_stats(table, columns, iqr_multiplier)
    else:
        converged = not find_outliers(table, stats)

    if not converged:
        logger.warning(f"Outlier replacement did not converge after {max_passes} passes")

    # A cell replaced in several passes counts once
    affected_per_column = {name: len(indexes) for name, indexes in replaced.items()}
    affected = sum(affected_per_column.values())
    if affected:
        logger.info(f"Replaced {affected} outlier cells in {passes} passes: {affected_per_column}")

    return OutlierResult(
        table=table,
        policy='replace',
        affected=affected,
        passes=passes,
        converged=converged,
        affected_per_column=affected_per_column,
    )


def _drop_outlier_rows(table: Table, stats: Dict[str, Optional[ColumnStats]]) -> OutlierResult:
    outliers = find_outliers(table, stats)

    flagged = set()
    for indexes in outliers.values():
        flagged.update(indexes)

    keep = [index not in flagged for index in range(len(table))]
    if flagged:
        logger.info(f"Dropped {len(flagged)} rows containing outliers")

    return OutlierResult(
        table=table.filter_rows(keep),
        policy='drop',
        affected=len(flagged),
        passes=1,
        converged=True,
        affected_per_column={name: len(indexes) for name, indexes in outliers.items()},
    )
