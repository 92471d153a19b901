# tabclean/stages/encoder.py
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from tabclean.table import MISSING, Cell, Number, Table, Text

logger = logging.getLogger(__name__)

DEFAULT_MISSING_CODE = -1


class CategoricalMapping:
    """Distinct values of one categorical column in first-seen order.

    A value's position in ``values`` is its integer code.
    """

    def __init__(self, values: Iterable[str] = ()):
        self.values: List[str] = []
        self._codes: Dict[str, int] = {}
        for value in values:
            self.add(value)

    def add(self, value: str) -> int:
        code = self._codes.get(value)
        if code is None:
            code = len(self.values)
            self.values.append(value)
            self._codes[value] = code
        return code

    def code_for(self, value: str) -> Optional[int]:
        return self._codes.get(value)

    def to_dict(self) -> Dict[str, int]:
        return dict(self._codes)

    def __contains__(self, value: str) -> bool:
        return value in self._codes

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CategoricalMapping):
            return NotImplemented
        return self.values == other.values

    def __repr__(self) -> str:
        return f"CategoricalMapping({self.values})"


def build_mappings(table: Table, columns: Sequence[str]) -> Dict[str, CategoricalMapping]:
    """Scan every row once, in order, and record each new Text value"""
    mappings = {name: CategoricalMapping() for name in columns}

    for row in table.rows:
        for name in columns:
            cell = row[name]
            if isinstance(cell, Text):
                mappings[name].add(cell.value)

    return mappings


def _encode_cell(cell: Cell, mapping: CategoricalMapping, missing_code: int) -> Cell:
    if cell is MISSING:
        return Number(float(missing_code))
    if isinstance(cell, Text):
        code = mapping.code_for(cell.value)
        # Unknown to this mapping: it came from a different dataset, keep the text
        return cell if code is None else Number(float(code))
    return cell


def encode_table(table: Table, mappings: Dict[str, CategoricalMapping],
                 missing_code: int = DEFAULT_MISSING_CODE) -> Table:
    """Replace categorical text with integer codes.

    Missing cells encode to ``missing_code`` (negative, so it never matches a
    real code). Text absent from the active mapping passes through unchanged.
    Columns of ``mappings`` that ``table`` does not have are ignored.
    """
    if missing_code >= 0:
        raise ValueError(f"Missing category code must be negative: {missing_code}")

    replacements = {}
    unresolved = 0
    for name, mapping in mappings.items():
        if name not in table.columns:
            continue
        cells = [_encode_cell(cell, mapping, missing_code) for cell in table.column(name)]
        unresolved += sum(1 for cell in cells if isinstance(cell, Text))
        replacements[name] = cells

    if unresolved:
        logger.info(f"{unresolved} categorical values had no code and were passed through")

    return table.with_columns(replacements) if replacements else table
