"""Tests for spawn_index.width — median width precedence."""

import numpy as np
import pandas as pd
import pytest

from spawn_index.errors import InvalidMeasurement, MissingColumns, NoWidthAvailable
from spawn_index.width import WidthTables, resolve_width, resolve_width_level


@pytest.fixture
def tables():
    return WidthTables(
        region={'WCVI': 15.0},
        section={('WCVI', 231): 12.0},
        pool={('WCVI', 231, 1): 8.0},
    )


class TestPrecedence:
    def test_pool_wins(self, tables):
        assert resolve_width('WCVI', 231, 1, tables) == 8.0

    def test_pool_wins_regardless_of_other_levels(self):
        for sec_w, reg_w in [(1.0, 100.0), (50.0, 0.5), (8.0, 8.0)]:
            t = WidthTables(
                region={'WCVI': reg_w},
                section={('WCVI', 231): sec_w},
                pool={('WCVI', 231, 1): 3.3},
            )
            assert resolve_width('WCVI', 231, 1, t) == 3.3

    def test_falls_back_to_section(self, tables):
        assert resolve_width_level('WCVI', 231, 2, tables) == (12.0, 'section')

    def test_no_pool_falls_back_to_section(self, tables):
        assert resolve_width('WCVI', 231, None, tables) == 12.0

    def test_falls_back_to_region(self, tables):
        assert resolve_width_level('WCVI', 232, 1, tables) == (15.0, 'region')

    def test_removing_levels(self):
        pool = {('SoG', 171, 3): 6.0}
        section = {('SoG', 171): 9.0}
        region = {'SoG': 20.0}
        assert resolve_width('SoG', 171, 3, WidthTables(region, section, pool)) == 6.0
        assert resolve_width('SoG', 171, 3, WidthTables(region, section, {})) == 9.0
        assert resolve_width('SoG', 171, 3, WidthTables(region, {}, {})) == 20.0

    def test_nothing_resolves(self, tables):
        with pytest.raises(NoWidthAvailable, match="PRD"):
            resolve_width('PRD', 41, 1, tables)

    def test_zero_width_is_a_width(self):
        t = WidthTables(region={'A': 5.0}, pool={('A', 1, 1): 0.0})
        assert resolve_width('A', 1, 1, t) == 0.0


class TestWidthTables:
    def test_negative_width_rejected(self):
        with pytest.raises(InvalidMeasurement):
            WidthTables(region={'WCVI': -1.0})

    def test_missing_widths_dropped(self):
        t = WidthTables(region={'WCVI': 15.0}, section={('WCVI', 231): np.nan})
        assert resolve_width_level('WCVI', 231, None, t) == (15.0, 'region')

    def test_immutable(self, tables):
        with pytest.raises(TypeError):
            tables.region['WCVI'] = 1.0

    def test_from_frames(self):
        region = pd.DataFrame({'Region': ['WCVI'], 'WidthReg': [15.0]})
        section = pd.DataFrame({'Region': ['WCVI'], 'Section': [231], 'WidthSec': [12.0]})
        pool = pd.DataFrame({
            'Region': ['WCVI', 'WCVI'],
            'Section': [231, 231],
            'Pool': [1, np.nan],
            'WidthPool': [8.0, 9.0],
        })
        t = WidthTables.from_frames(region, section, pool)
        assert dict(t.pool) == {('WCVI', 231, 1): 8.0}
        assert resolve_width('WCVI', 231, 1, t) == 8.0

    def test_from_frames_missing_column(self):
        region = pd.DataFrame({'Region': ['WCVI'], 'WIDMED': [15.0]})
        section = pd.DataFrame(columns=['Region', 'Section', 'WidthSec'])
        pool = pd.DataFrame(columns=['Region', 'Section', 'Pool', 'WidthPool'])
        with pytest.raises(MissingColumns, match="WidthReg"):
            WidthTables.from_frames(region, section, pool)
