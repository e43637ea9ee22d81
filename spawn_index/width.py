"""Median spawn width lookup for surface spawn index calculations.

Observed width is not used for surface spawns because surveyors tend to
underestimate it (Hay & Kronlund 1987). The width comes instead from
median underwater survey widths, taken at the finest level available:

  pool  →  section  →  region
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

import pandas as pd

from spawn_index.errors import InvalidMeasurement, NoWidthAvailable
from spawn_index.tables import check_columns
from spawn_index.utils import as_int, is_missing


def _freeze(widths: Mapping, level: str) -> Mapping:
    clean = {}
    for key, width in widths.items():
        if is_missing(width):
            continue
        width = float(width)
        if width < 0 or math.isinf(width):
            raise InvalidMeasurement(
                f"{level} width for {key} must be a non-negative number, "
                f"got {width}"
            )
        clean[key] = width
    return MappingProxyType(clean)


@dataclass(frozen=True)
class WidthTables:
    """Median widths (m) keyed by Region, (Region, Section), (Region, Section, Pool)."""
    region: Mapping[str, float] = field(default_factory=dict)
    section: Mapping[Tuple[str, int], float] = field(default_factory=dict)
    pool: Mapping[Tuple[str, int, int], float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'region', _freeze(self.region, 'region'))
        object.__setattr__(self, 'section', _freeze(self.section, 'section'))
        object.__setattr__(self, 'pool', _freeze(self.pool, 'pool'))

    @classmethod
    def from_frames(
        cls,
        region: pd.DataFrame,
        section: pd.DataFrame,
        pool: pd.DataFrame,
    ) -> "WidthTables":
        """Build from tables with WidthReg, WidthSec, and WidthPool columns."""
        check_columns(region, ['Region', 'WidthReg'], 'region')
        check_columns(section, ['Region', 'Section', 'WidthSec'], 'section')
        check_columns(pool, ['Region', 'Section', 'Pool', 'WidthPool'], 'pool')
        return cls(
            region={
                str(r.Region): r.WidthReg
                for r in region.itertuples(index=False)
            },
            section={
                (str(r.Region), as_int(r.Section)): r.WidthSec
                for r in section.itertuples(index=False)
            },
            pool={
                (str(r.Region), as_int(r.Section), as_int(r.Pool)): r.WidthPool
                for r in pool.itertuples(index=False)
                if not is_missing(r.Pool)
            },
        )


# Finest level first; each lookup returns None when it doesn't resolve.
WidthLookup = Callable[[WidthTables, str, int, Optional[int]], Optional[float]]

WIDTH_PRECEDENCE: List[Tuple[str, WidthLookup]] = [
    ('pool', lambda t, reg, sec, pool:
        None if pool is None else t.pool.get((reg, sec, pool))),
    ('section', lambda t, reg, sec, pool: t.section.get((reg, sec))),
    ('region', lambda t, reg, sec, pool: t.region.get(reg)),
]


def resolve_width_level(
    region: str,
    section: int,
    pool: Optional[int],
    tables: WidthTables,
) -> Tuple[float, str]:
    """Width to use for a location and the level it came from.

    Raises:
        NoWidthAvailable: No pool, section, or region width.
    """
    for level, lookup in WIDTH_PRECEDENCE:
        width = lookup(tables, region, section, pool)
        if width is not None:
            return width, level
    raise NoWidthAvailable(
        f"no width for Region {region}, Section {section}, Pool {pool}"
    )


def resolve_width(
    region: str,
    section: int,
    pool: Optional[int],
    tables: WidthTables,
) -> float:
    """Width (m) to use for surface spawn area at a location."""
    return resolve_width_level(region, section, pool, tables)[0]
