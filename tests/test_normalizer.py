# tests/test_normalizer.py
import numpy as np
import pytest

from tabclean.stages.normalizer import min_max_scale, normalize, rescale
from tabclean.table import MISSING, Number


def _values(table, name):
    return [cell.value for cell in table.column(name)]


class TestNormalize:

    def test_zero_mean_unit_std(self, make_table):
        table = make_table({'a': [1, 2, 3, 4], 'label': [0, 1, 0, 1]})

        result = normalize(table, ['a'])

        values = _values(result, 'a')
        assert np.mean(values) == pytest.approx(0.0, abs=1e-9)
        assert np.std(values) == pytest.approx(1.0, abs=1e-9)
        assert values[0] == pytest.approx(-1.5 / np.sqrt(1.25))

    def test_constant_column_becomes_zeros(self, make_table):
        table = make_table({'a': [0.1, 0.1, 0.1], 'label': [0, 1, 0]})

        result = normalize(table, ['a'])

        assert result.column('a') == [Number(0.0), Number(0.0), Number(0.0)]

    def test_missing_cells_pass_through(self, make_table):
        table = make_table({'a': [2, None, 4], 'b': [None, None, None], 'label': [0, 1, 0]})

        result = normalize(table, ['a', 'b'])

        assert result.column('a')[1] is MISSING
        assert result.column('a')[0] == Number(-1.0)
        assert result.column('a')[2] == Number(1.0)
        assert result.column('b') == [MISSING, MISSING, MISSING]

    def test_only_named_columns_change(self, make_table):
        table = make_table({'a': [1, 2, 3], 'other': [10, 20, 30], 'label': [5, 6, 7]})

        result = normalize(table, ['a'])

        assert result.column('other') == table.column('other')
        assert result.column('label') == table.column('label')

    def test_wide_range_column(self):
        from tabclean.table import Table

        rng = np.random.default_rng(3)
        values = rng.normal(1000, 250, 300)
        table = Table(['x', 'label'], [{'x': Number(float(v)), 'label': Number(1.0)} for v in values])

        result = normalize(table, ['x'])

        normalized = _values(result, 'x')
        assert abs(np.mean(normalized)) < 1e-6
        assert abs(np.std(normalized) - 1) < 1e-6


class TestMinMaxScale:

    def test_unit_range(self, make_table):
        table = make_table({'a': [2, 4, None, 10], 'label': [0, 1, 0, 1]})

        result = min_max_scale(table, ['a'])

        assert result.column('a') == [Number(0.0), Number(0.25), MISSING, Number(1.0)]
        assert result.column('label') == table.column('label')

    def test_constant_and_empty_columns(self, make_table):
        table = make_table({'a': [7, 7], 'b': [None, None], 'label': [0, 1]})

        result = min_max_scale(table, ['a', 'b'])

        assert result.column('a') == [Number(0.0), Number(0.0)]
        assert result.column('b') == [MISSING, MISSING]


def test_rescale_dispatch(make_table):
    table = make_table({'a': [1, 3], 'label': [0, 1]})

    assert rescale(table, ['a']) == normalize(table, ['a'])
    assert rescale(table, ['a'], 'minmax').column('a') == [Number(0.0), Number(1.0)]
    with pytest.raises(ValueError):
        rescale(table, ['a'], 'robust')
