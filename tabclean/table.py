# tabclean/table.py
import io
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from tabclean.exceptions import InputTooLargeError, InvalidInputError
from tabclean.utils.logging_config import log_execution_time


class _Missing:
    """Singleton marker for a cell with no usable value"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Missing, ())


MISSING = _Missing()


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


Cell = Union[_Missing, Number, Text]


def is_missing(cell: Cell) -> bool:
    return cell is MISSING


class ColumnKind(str, Enum):
    NUMERIC = 'numeric'
    CATEGORICAL = 'categorical'
    LABEL = 'label'


# Plain decimal / exponent literals only; float() alone would also accept
# "nan", "inf" and "1_000".
_NUMBER_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def parse_number(text: str) -> Optional[float]:
    """Parse a raw cell as a finite float, or return None"""
    text = text.strip()
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


def cell_to_python(cell: Cell) -> Union[float, str, None]:
    """Convert a cell to a JSON-friendly value"""
    if isinstance(cell, Number):
        return cell.value
    if isinstance(cell, Text):
        return cell.value
    return None


@dataclass
class RawTable:
    """Header names plus rows of untyped cell strings, as produced by a CSV loader"""

    columns: List[str]
    rows: List[List[str]] = field(default_factory=list)

    def __post_init__(self):
        if len(set(self.columns)) != len(self.columns):
            raise InvalidInputError("Column names must be unique", details=", ".join(self.columns))
        width = len(self.columns)
        # Short rows are padded with empty cells; long rows are an input error.
        normalized = []
        for index, row in enumerate(self.rows):
            if len(row) > width:
                raise InvalidInputError(
                    f"Row {index} has {len(row)} cells but the header has {width}"
                )
            cells = [str(value).strip() for value in row]
            normalized.append(cells + [''] * (width - len(cells)))
        self.rows = normalized

    @property
    def label_column(self) -> Optional[str]:
        return self.columns[-1] if self.columns else None

    def column_values(self, name: str) -> List[str]:
        position = self.columns.index(name)
        return [row[position] for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


class Table:
    """Typed table: ordered unique columns and rows mapping column name to Cell.

    Tables are treated as immutable; every transform returns a new instance.
    """

    def __init__(self, columns: Sequence[str], rows: Iterable[Dict[str, Cell]] = ()):
        self.columns = list(columns)
        if len(set(self.columns)) != len(self.columns):
            raise InvalidInputError("Column names must be unique", details=", ".join(self.columns))
        self.rows = [dict(row) for row in rows]

    def __len__(self) -> int:
        return len(self.rows)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.columns == other.columns and self.rows == other.rows

    def __repr__(self) -> str:
        return f"Table(columns={self.columns}, rows={len(self.rows)})"

    @property
    def label_column(self) -> Optional[str]:
        return self.columns[-1] if self.columns else None

    def column(self, name: str) -> List[Cell]:
        if name not in self.columns:
            raise KeyError(name)
        return [row[name] for row in self.rows]

    def numbers(self, name: str) -> List[float]:
        """Non-missing numeric values of a column, in row order"""
        return [cell.value for cell in self.column(name) if isinstance(cell, Number)]

    def with_columns(self, replacements: Dict[str, Sequence[Cell]]) -> 'Table':
        for name, cells in replacements.items():
            if name not in self.columns:
                raise KeyError(name)
            if len(cells) != len(self.rows):
                raise ValueError(f"Column '{name}' has {len(cells)} cells, table has {len(self.rows)} rows")
        rows = []
        for index, row in enumerate(self.rows):
            new_row = dict(row)
            for name, cells in replacements.items():
                new_row[name] = cells[index]
            rows.append(new_row)
        return Table(self.columns, rows)

    def filter_rows(self, keep: Sequence[bool]) -> 'Table':
        if len(keep) != len(self.rows):
            raise ValueError("Row mask length does not match table")
        return Table(self.columns, [row for row, flag in zip(self.rows, keep) if flag])

    def to_records(self) -> List[List[Union[float, str, None]]]:
        return [[cell_to_python(row[name]) for name in self.columns] for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        """Export to pandas; Missing becomes None (NaN in numeric columns)"""
        return pd.DataFrame(self.to_records(), columns=self.columns)

    def head(self, n: int = 10) -> 'Table':
        if n < 0:
            raise ValueError(f"Row count must be >= 0: {n}")
        return Table(self.columns, self.rows[:n])

    def to_csv(self) -> str:
        """CSV text with a header row; Missing cells are written empty"""
        return self.to_frame().to_csv(index=False)


def _is_number(cell: str) -> bool:
    return parse_number(cell) is not None


def _first_row_is_header(records: Sequence[Sequence[str]]) -> bool:
    """Guess whether the first record holds column names.

    The first row is data when all its values are numbers, or when its text
    cells only sit in columns that hold text further down (``red,1,0``). It is
    a header when a text cell heads a column of numbers (``age`` over ``31``),
    or when it holds nothing but text.
    """
    first, rest = records[0], records[1:]
    filled = [cell for cell in first if cell]
    if filled and all(_is_number(cell) for cell in filled):
        return False

    for position, cell in enumerate(first):
        if not cell or _is_number(cell):
            continue
        below = [row[position] for row in rest if row[position]]
        if below and all(_is_number(value) for value in below):
            return True

    return not any(_is_number(cell) for cell in filled)


@log_execution_time
def load_csv_text(text: str, has_header: Optional[bool] = None) -> RawTable:
    """Parse CSV text into a RawTable.

    Args:
        text: CSV document
        has_header: whether the first row holds column names; None guesses
            it from the cell types (see _first_row_is_header)
    """
    if not text or not text.strip():
        return RawTable(columns=[], rows=[])

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InvalidInputError("Could not parse CSV content", details=str(e))

    frame = frame.fillna('')
    records = [[str(value).strip() for value in record] for record in frame.values.tolist()]
    if not records:
        return RawTable(columns=[], rows=[])

    if has_header is None:
        has_header = _first_row_is_header(records)

    if has_header:
        header, data = records[0], records[1:]
        columns = [name or f"column_{i}" for i, name in enumerate(header)]
        # Duplicate header names get a numeric suffix, like pandas does.
        seen: Dict[str, int] = {}
        unique = []
        for name in columns:
            count = seen.get(name, 0)
            unique.append(name if count == 0 else f"{name}.{count}")
            seen[name] = count + 1
        columns = unique
    else:
        data = records
        columns = [f"column_{i}" for i in range(len(records[0]))]

    # Drop rows that are entirely empty (trailing separators, blank lines with commas)
    data = [row for row in data if any(cell for cell in row)]
    return RawTable(columns=columns, rows=data)


def load_csv_file(path: Union[str, Path], max_file_size_mb: int = 500,
                  supported_formats: Sequence[str] = ('.csv',),
                  has_header: Optional[bool] = None) -> RawTable:
    """Load a CSV file from disk into a RawTable"""
    path = Path(path)

    if not path.exists():
        raise InvalidInputError(f"Data file not found: {path}")

    extension = path.suffix.lower()
    if extension not in supported_formats:
        raise InvalidInputError(f"Unsupported file format: {extension}")

    file_size_mb = path.stat().st_size / (1024 * 1024)
    if file_size_mb > max_file_size_mb:
        raise InputTooLargeError(f"File too large: {file_size_mb:.1f}MB > {max_file_size_mb}MB")

    for encoding in ['utf-8', 'latin-1']:
        try:
            text = path.read_text(encoding=encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise InvalidInputError(f"Could not decode {path}")

    return load_csv_text(text, has_header=has_header)
