# tests/conftest.py
import pytest

from tabclean.table import MISSING, Number, Table, Text


def _to_cell(value):
    if value is None:
        return MISSING
    if isinstance(value, str):
        return Text(value)
    return Number(float(value))


@pytest.fixture
def make_table():
    """Build a typed Table from {column: [python values]}; None is Missing"""

    def _make(columns):
        names = list(columns)
        length = len(next(iter(columns.values()))) if columns else 0
        rows = [
            {name: _to_cell(columns[name][index]) for name in names}
            for index in range(length)
        ]
        return Table(names, rows)

    return _make
