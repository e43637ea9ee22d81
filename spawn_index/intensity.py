"""Historical spawn intensity → egg layers.

Surface surveys recorded an ordinal intensity rating before egg layers were
counted directly. The program used two rating scales:

  year < intensity_change                  categories 1–5
  intensity_change <= year < layers_start  categories 1–9
  year >= layers_start                     egg layers recorded directly

Each survey record is classified once into a measurement variant
(CategoricalIntensity or DirectLayerCount) and then normalised into a layer
count, so the density estimators never branch on year.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from spawn_index.config import YearsSection
from spawn_index.errors import AmbiguousProtocol, InvalidCategory, InvalidMeasurement
from spawn_index.types import (
    FIVE_TO_NINE,
    INTENSITY_TABLE,
    CategoricalIntensity,
    DirectLayerCount,
    IntensityCategory,
    IntensityScale,
    Measurement,
)

LayerTable = Mapping[int, float]


def intensity_table_from_rows(rows: Iterable[IntensityCategory]) -> LayerTable:
    """Read-only category → layers mapping from reference rows.

    Raises:
        ValueError: Duplicate categories, not exactly 9 rows, or negative layers.
    """
    table = {}
    for row in rows:
        if row.category in table:
            raise ValueError(f"duplicate intensity category {row.category}")
        if row.layers < 0:
            raise ValueError(
                f"intensity category {row.category} has negative layers"
            )
        table[int(row.category)] = float(row.layers)
    if sorted(table) != list(range(1, IntensityScale.NINE + 1)):
        raise ValueError(
            f"intensity table must define categories 1–9, got {sorted(table)}"
        )
    return MappingProxyType(table)


DEFAULT_LAYERS: LayerTable = intensity_table_from_rows(INTENSITY_TABLE)


def intensity_scale(year: int, years: YearsSection) -> IntensityScale:
    """Rating scale in use for a survey year.

    Raises:
        AmbiguousProtocol: Year before the survey program or in the layers era.
    """
    if year < years.survey_start:
        raise AmbiguousProtocol(
            f"{year} is before the survey program started ({years.survey_start})"
        )
    if year >= years.layers_start:
        raise AmbiguousProtocol(
            f"egg layers are recorded directly from {years.layers_start}; "
            f"no intensity scale applies to {year}"
        )
    if year < years.intensity_change:
        return IntensityScale.FIVE
    return IntensityScale.NINE


def classify_measurement(
    year: int,
    intensity: Optional[int],
    egg_layers: Optional[float],
    years: YearsSection,
) -> Optional[Measurement]:
    """Decide which recording protocol a surface record follows.

    Returns None when no usable measurement was recorded: neither field, or
    an intensity without egg layers from ``layers_start`` on.

    Raises:
        AmbiguousProtocol: Record from before the survey program without
            egg layers.
    """
    if intensity is None and egg_layers is None:
        return None
    if year >= years.layers_start:
        if egg_layers is None:
            return None
        return DirectLayerCount(float(egg_layers))
    if year < years.survey_start:
        if egg_layers is None:
            raise AmbiguousProtocol(
                f"{year}: intensity {intensity} recorded without egg layers "
                f"outside {years.survey_start}–{years.layers_start - 1}"
            )
        return DirectLayerCount(float(egg_layers))
    if intensity is not None:
        return CategoricalIntensity(int(intensity), intensity_scale(year, years))
    return DirectLayerCount(float(egg_layers))


def intensity_to_layers(
    year: int,
    category: int,
    years: YearsSection,
    table: LayerTable = DEFAULT_LAYERS,
) -> float:
    """Egg layers for an intensity rating recorded in ``year``.

    Ratings from the 5-category era are remapped through FIVE_TO_NINE when
    the year falls in the rescale window, otherwise looked up as recorded.

    Raises:
        InvalidCategory: Category not defined for the year's scale.
        AmbiguousProtocol: Year outside the intensity eras.
    """
    scale = intensity_scale(year, years)
    if category not in range(1, scale + 1):
        raise InvalidCategory(
            f"intensity {category} is not a valid {int(scale)}-category rating "
            f"({year})"
        )
    if scale == IntensityScale.FIVE and (
        years.rescale_start <= year < years.rescale_end
    ):
        category = FIVE_TO_NINE[category]
    return table[category]


def resolve_egg_layers(
    measurement: Measurement,
    year: int,
    years: YearsSection,
    table: LayerTable = DEFAULT_LAYERS,
) -> float:
    """Normalise a measurement variant into egg layers."""
    if isinstance(measurement, DirectLayerCount):
        if measurement.layers < 0:
            raise InvalidMeasurement(
                f"egg layers must be >= 0, got {measurement.layers}"
            )
        return measurement.layers
    if measurement.scale != intensity_scale(year, years):
        raise InvalidCategory(
            f"{int(measurement.scale)}-category rating recorded in {year}"
        )
    return intensity_to_layers(year, measurement.category, years, table)
