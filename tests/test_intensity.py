"""Tests for spawn_index.intensity — historical intensity ratings → egg layers."""

import pytest

from spawn_index.config import YearsSection
from spawn_index.errors import AmbiguousProtocol, InvalidCategory, InvalidMeasurement
from spawn_index.intensity import (
    DEFAULT_LAYERS,
    classify_measurement,
    intensity_scale,
    intensity_table_from_rows,
    intensity_to_layers,
    resolve_egg_layers,
)
from spawn_index.types import (
    FIVE_TO_NINE,
    INTENSITY_TABLE,
    CategoricalIntensity,
    DirectLayerCount,
    IntensityCategory,
    IntensityScale,
)

YEARS = YearsSection()


# ── Reference table ───────────────────────────────────────────────────

class TestIntensityTable:
    def test_nine_categories(self):
        assert sorted(DEFAULT_LAYERS) == list(range(1, 10))

    def test_layers_increase_with_category(self):
        layers = [DEFAULT_LAYERS[c] for c in range(1, 10)]
        assert layers == sorted(layers)

    def test_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_LAYERS[1] = 99.0

    def test_duplicate_category_rejected(self):
        rows = list(INTENSITY_TABLE) + [IntensityCategory(1, 'Again', 0.1)]
        with pytest.raises(ValueError, match="duplicate"):
            intensity_table_from_rows(rows)

    def test_missing_category_rejected(self):
        with pytest.raises(ValueError, match="1–9"):
            intensity_table_from_rows(INTENSITY_TABLE[:5])

    def test_negative_layers_rejected(self):
        rows = list(INTENSITY_TABLE[:8]) + [IntensityCategory(9, 'Bad', -1.0)]
        with pytest.raises(ValueError, match="negative"):
            intensity_table_from_rows(rows)

    def test_five_to_nine_remap(self):
        assert dict(FIVE_TO_NINE) == {1: 1, 2: 3, 3: 5, 4: 7, 5: 9}


# ── Scales by era ─────────────────────────────────────────────────────

class TestIntensityScale:
    def test_five_category_era(self):
        assert intensity_scale(1951, YEARS) == IntensityScale.FIVE
        assert intensity_scale(1968, YEARS) == IntensityScale.FIVE

    def test_nine_category_era(self):
        assert intensity_scale(1969, YEARS) == IntensityScale.NINE
        assert intensity_scale(1978, YEARS) == IntensityScale.NINE

    def test_layers_era_has_no_scale(self):
        with pytest.raises(AmbiguousProtocol):
            intensity_scale(1979, YEARS)

    def test_before_program(self):
        with pytest.raises(AmbiguousProtocol):
            intensity_scale(1940, YEARS)


# ── Lookup ────────────────────────────────────────────────────────────

class TestIntensityToLayers:
    def test_five_category_rescaled(self):
        """1960 rating 2 is read as 9-category rating 3."""
        assert intensity_to_layers(1960, 2, YEARS) == DEFAULT_LAYERS[3]

    def test_five_category_top_maps_to_nine(self):
        assert intensity_to_layers(1955, 5, YEARS) == DEFAULT_LAYERS[9]

    def test_nine_category_direct(self):
        assert intensity_to_layers(1970, 2, YEARS) == pytest.approx(0.9444)
        assert intensity_to_layers(1978, 9, YEARS) == DEFAULT_LAYERS[9]

    @pytest.mark.parametrize("category", [6, 7, 8, 9])
    def test_high_category_before_change(self, category):
        with pytest.raises(InvalidCategory):
            intensity_to_layers(1960, category, YEARS)

    @pytest.mark.parametrize("category", [0, 10, -1])
    def test_unknown_category(self, category):
        with pytest.raises(InvalidCategory):
            intensity_to_layers(1970, category, YEARS)

    def test_not_invoked_in_layers_era(self):
        with pytest.raises(AmbiguousProtocol):
            intensity_to_layers(1985, 3, YEARS)

    def test_outside_rescale_window_not_remapped(self):
        years = YearsSection(rescale_start=1951, rescale_end=1960)
        assert intensity_to_layers(1965, 2, years) == DEFAULT_LAYERS[2]
        assert intensity_to_layers(1955, 2, years) == DEFAULT_LAYERS[3]
        with pytest.raises(InvalidCategory):
            intensity_to_layers(1965, 6, years)

    def test_custom_table(self):
        rows = [IntensityCategory(c, str(c), float(c)) for c in range(1, 10)]
        table = intensity_table_from_rows(rows)
        assert intensity_to_layers(1970, 4, YEARS, table) == 4.0


# ── Classification ────────────────────────────────────────────────────

class TestClassifyMeasurement:
    def test_intensity_before_change(self):
        m = classify_measurement(1960, 3, None, YEARS)
        assert m == CategoricalIntensity(3, IntensityScale.FIVE)

    def test_intensity_after_change(self):
        m = classify_measurement(1972, 7, None, YEARS)
        assert m == CategoricalIntensity(7, IntensityScale.NINE)

    def test_intensity_preferred_in_intensity_eras(self):
        m = classify_measurement(1972, 7, 2.5, YEARS)
        assert isinstance(m, CategoricalIntensity)

    def test_layers_only_in_intensity_era(self):
        assert classify_measurement(1972, None, 2.5, YEARS) == DirectLayerCount(2.5)

    def test_layers_era(self):
        assert classify_measurement(1990, 4, 1.5, YEARS) == DirectLayerCount(1.5)

    def test_layers_era_intensity_only(self):
        """No layer count from 1979 on is a missing measurement."""
        assert classify_measurement(1990, 4, None, YEARS) is None

    def test_before_program_intensity_only(self):
        with pytest.raises(AmbiguousProtocol):
            classify_measurement(1940, 2, None, YEARS)

    def test_before_program_with_layers(self):
        assert classify_measurement(1940, 2, 1.0, YEARS) == DirectLayerCount(1.0)

    def test_nothing_recorded(self):
        assert classify_measurement(1990, None, None, YEARS) is None


# ── Normalisation ─────────────────────────────────────────────────────

class TestResolveEggLayers:
    def test_direct_passthrough(self):
        assert resolve_egg_layers(DirectLayerCount(3.2), 1995, YEARS) == 3.2

    def test_negative_layers(self):
        with pytest.raises(InvalidMeasurement):
            resolve_egg_layers(DirectLayerCount(-1.0), 1995, YEARS)

    def test_categorical(self):
        m = CategoricalIntensity(4, IntensityScale.NINE)
        assert resolve_egg_layers(m, 1975, YEARS) == DEFAULT_LAYERS[4]

    def test_scale_must_match_year(self):
        m = CategoricalIntensity(4, IntensityScale.NINE)
        with pytest.raises(InvalidCategory):
            resolve_egg_layers(m, 1960, YEARS)
