"""Core data types for SpawnIndex.

This module defines:
  - SurveyMethod, IntensityScale enumerations
  - Measurement variants (CategoricalIntensity, DirectLayerCount)
  - The fixed intensity category reference table
  - Typed records for area and survey tables
  - IndexResult, the output of every calculation entry point

Records are frozen: survey rows and reference tables are read once per
calculation and never updated in place.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

import pandas as pd


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class SurveyMethod(str, Enum):
    """Spawn survey methods."""
    SURFACE = 'Surface'
    MACROCYSTIS = 'Macrocystis'
    UNDERSTORY = 'Understory'


class IntensityScale(IntEnum):
    """Historical intensity rating scales (number of categories)."""
    FIVE = 5   # Before the scale change
    NINE = 9   # Scale change until egg layers were recorded


# ═══════════════════════════════════════════════════════════════════════
# MEASUREMENT VARIANTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CategoricalIntensity:
    """Ordinal spawn intensity rating on a 5- or 9-category scale."""
    category: int
    scale: IntensityScale


@dataclass(frozen=True)
class DirectLayerCount:
    """Egg layers recorded directly by the surveyor."""
    layers: float


Measurement = Union[CategoricalIntensity, DirectLayerCount]


# ═══════════════════════════════════════════════════════════════════════
# INTENSITY CATEGORIES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class IntensityCategory:
    category: int
    description: str
    layers: float


INTENSITY_TABLE: Tuple[IntensityCategory, ...] = (
    IntensityCategory(1, 'Very light', 0.5529),
    IntensityCategory(2, 'Light', 0.9444),
    IntensityCategory(3, 'Light-medium', 1.3360),
    IntensityCategory(4, 'Medium', 2.1496),
    IntensityCategory(5, 'Medium-heavy', 2.9633),
    IntensityCategory(6, 'Heavy', 4.1318),
    IntensityCategory(7, 'Very heavy', 5.3002),
    IntensityCategory(8, 'Extremely heavy', 6.5647),
    IntensityCategory(9, 'Maximum', 7.8291),
)

# 5-category ratings onto the 9-category frame. Category boundaries are not
# linear in true layer count, so this is a lookup rather than a scale factor.
FIVE_TO_NINE: Mapping[int, int] = MappingProxyType({1: 1, 2: 3, 3: 5, 4: 7, 5: 9})


# ═══════════════════════════════════════════════════════════════════════
# AREA AND SURVEY RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AreaRecord:
    """Spatial key chain for one spawn location."""
    sar: int
    region: str
    region_name: str
    stat_area: int
    group: Optional[str]
    section: int
    location_code: int
    location_name: str
    pool: Optional[int] = None
    eastings: Optional[float] = None
    northings: Optional[float] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None


SpawnKey = Tuple[int, int, int]  # (Year, LocationCode, SpawnNumber)


@dataclass(frozen=True)
class SurfaceObservation:
    """One surface spawn survey record."""
    year: int
    location_code: int
    spawn_number: int
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    length: Optional[float]
    width: Optional[float]           # Observed; reporting only
    intensity: Optional[int] = None
    egg_layers: Optional[float] = None
    depth: Optional[float] = None
    method: str = SurveyMethod.SURFACE.value

    @property
    def key(self) -> SpawnKey:
        return (self.year, self.location_code, self.spawn_number)


@dataclass(frozen=True)
class MacrocystisObservation:
    """One Macrocystis transect."""
    year: int
    location_code: int
    spawn_number: int
    transect: int
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    length: Optional[float]           # Bed length for the spawn (m)
    width: Optional[float]            # Transect width of the bed (m)
    plants: Optional[float]           # Plants counted on the transect
    cover: Optional[float]            # Proportion of plants bearing eggs
    height: Optional[float]           # Mean plant height (m)
    stalks_per_plant: Optional[float]
    egg_layers: Optional[float]

    @property
    def key(self) -> SpawnKey:
        return (self.year, self.location_code, self.spawn_number)


@dataclass(frozen=True)
class UnderstoryObservation:
    """One substrate or algae entry in an understory quadrat."""
    year: int
    location_code: int
    spawn_number: int
    transect: int
    station: int
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    length: Optional[float]           # Spawn length along shore (m)
    width: Optional[float]            # Transect width (m)
    substrate_type: Optional[str]
    egg_layers: Optional[float]
    cover: Optional[float]            # Proportion of quadrat covered

    @property
    def key(self) -> SpawnKey:
        return (self.year, self.location_code, self.spawn_number)


# ═══════════════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════════════

INDEX_KEYS = [
    'Year', 'Region', 'StatArea', 'Section', 'LocationCode', 'SpawnNumber',
]


@dataclass
class IndexResult:
    """Spawn index table plus any advisory messages raised producing it.

    ``frame`` carries an ``Eggs`` column (raw eggs) alongside the index
    column ``value_col`` (tonnes), so results can be re-aggregated.
    """
    frame: pd.DataFrame
    value_col: str
    theta: float
    messages: List[str] = field(default_factory=list)
