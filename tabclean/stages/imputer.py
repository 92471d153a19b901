# tabclean/stages/imputer.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from tabclean.stages.statistics import ColumnStats, compute_table_stats
from tabclean.table import MISSING, Number, Table

logger = logging.getLogger(__name__)


@dataclass
class ImputationResult:
    table: Table
    filled: int
    filled_per_column: Dict[str, int] = field(default_factory=dict)
    skipped_columns: List[str] = field(default_factory=list)


def impute_missing(table: Table, columns: Sequence[str],
                   stats: Optional[Dict[str, Optional[ColumnStats]]] = None) -> ImputationResult:
    """Replace Missing cells of each numeric column with the column mean.

    ``stats`` must have been computed on ``table`` before imputation; it is
    computed here when not supplied. Columns without any value have no mean
    and are skipped. Running this on an already imputed table fills nothing.
    """
    if stats is None:
        stats = compute_table_stats(table, columns)

    replacements = {}
    filled_per_column: Dict[str, int] = {}
    skipped: List[str] = []

    for name in columns:
        column_stats = stats.get(name)
        if column_stats is None:
            skipped.append(name)
            continue

        cells = table.column(name)
        missing = sum(1 for cell in cells if cell is MISSING)
        if missing == 0:
            continue

        fill = Number(column_stats.mean)
        replacements[name] = [fill if cell is MISSING else cell for cell in cells]
        filled_per_column[name] = missing
        logger.info(f"Filled {missing} missing values in '{name}' with mean {column_stats.mean:.4g}")

    if skipped:
        logger.warning(f"Skipped imputation for empty columns: {skipped}")

    return ImputationResult(
        table=table.with_columns(replacements) if replacements else table,
        filled=sum(filled_per_column.values()),
        filled_per_column=filled_per_column,
        skipped_columns=skipped,
    )
