# tabclean/stages/classifier.py
import logging
from typing import Dict, List, Optional, Tuple

from tabclean.table import (
    MISSING,
    Cell,
    ColumnKind,
    Number,
    RawTable,
    Table,
    Text,
    parse_number,
)

logger = logging.getLogger(__name__)


def classify_columns(raw: RawTable, sample_rows: Optional[int] = None) -> Dict[str, ColumnKind]:
    """Decide the kind of every column.

    The last column is always the label. Any other column is numeric when every
    non-empty cell among the first ``sample_rows`` rows parses as a finite
    number, categorical otherwise. A column with no values at all is numeric.
    """
    kinds: Dict[str, ColumnKind] = {}
    if not raw.columns:
        return kinds

    observed = raw.rows if sample_rows is None else raw.rows[:sample_rows]

    for position, name in enumerate(raw.columns):
        if name == raw.label_column:
            kinds[name] = ColumnKind.LABEL
            continue

        numeric = all(
            parse_number(row[position]) is not None
            for row in observed
            if row[position] != ''
        )
        kinds[name] = ColumnKind.NUMERIC if numeric else ColumnKind.CATEGORICAL

    logger.debug(f"Column kinds: {[(name, kind.value) for name, kind in kinds.items()]}")
    return kinds


def _to_cell(value: str, kind: ColumnKind) -> Tuple[Cell, bool]:
    """Convert one raw string; the flag is True when the cell was malformed"""
    if value == '':
        return MISSING, False

    if kind == ColumnKind.CATEGORICAL:
        return Text(value), False

    number = parse_number(value)
    if number is None:
        return MISSING, True
    return Number(number), False


def build_table(raw: RawTable, kinds: Dict[str, ColumnKind]) -> Tuple[Table, int]:
    """Type every cell of ``raw`` according to ``kinds``.

    Returns the typed table and the number of malformed cells, i.e. non-empty
    cells that failed to parse in a numeric or label column and were turned
    into Missing.
    """
    malformed = 0
    rows: List[Dict[str, Cell]] = []

    for raw_row in raw.rows:
        row: Dict[str, Cell] = {}
        for name, value in zip(raw.columns, raw_row):
            cell, bad = _to_cell(value, kinds[name])
            if bad:
                malformed += 1
            row[name] = cell
        rows.append(row)

    if malformed:
        logger.warning(f"{malformed} malformed cells treated as missing")

    return Table(raw.columns, rows), malformed


def columns_of_kind(kinds: Dict[str, ColumnKind], kind: ColumnKind) -> List[str]:
    return [name for name, column_kind in kinds.items() if column_kind == kind]
