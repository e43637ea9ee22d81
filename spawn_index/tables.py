"""Input table validation and conversion to typed records.

Survey and reference tables arrive as pandas DataFrames from the data
loading layer. Each table is checked once here (required columns, value
types) and turned into frozen records; the calculation modules never look
at column presence again.

Also includes the area wrangling steps applied after loading: attaching
Section groups, subsetting Sections, and joining the all-spawn table with
station depths.
"""

from __future__ import annotations

import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from spawn_index.config import YearsSection
from spawn_index.diagnostics import check_ft2m, check_years
from spawn_index.errors import MissingColumns
from spawn_index.types import (
    AreaRecord,
    MacrocystisObservation,
    SurfaceObservation,
    UnderstoryObservation,
)
from spawn_index.utils import as_float, as_int, is_missing, paste_nicely

AREA_COLUMNS = [
    'SAR', 'Region', 'RegionName', 'StatArea', 'Group', 'Section',
    'LocationCode', 'LocationName', 'Pool', 'Eastings', 'Northings',
    'Longitude', 'Latitude',
]

SURFACE_COLUMNS = [
    'Year', 'LocationCode', 'SpawnNumber', 'Start', 'End', 'Length', 'Width',
]

MACROCYSTIS_COLUMNS = [
    'Year', 'LocationCode', 'SpawnNumber', 'Transect', 'Start', 'End',
    'Length', 'Width', 'Plants', 'Cover', 'Height', 'StalksPerPlant',
    'EggLayers',
]

UNDERSTORY_COLUMNS = [
    'Year', 'LocationCode', 'SpawnNumber', 'Transect', 'Station', 'Start',
    'End', 'Length', 'Width', 'SubstrateType', 'EggLayers', 'Cover',
]


def check_columns(frame: pd.DataFrame, required: Sequence[str], name: str) -> None:
    """Raise MissingColumns if ``frame`` lacks any of ``required``."""
    if not isinstance(frame, pd.DataFrame):
        raise TypeError(f"`{name}` must be a pandas DataFrame")
    missing = set(required) - set(frame.columns)
    if missing:
        raise MissingColumns(name, missing)


def _as_date(value) -> Optional[datetime.date]:
    if is_missing(value):
        return None
    return pd.Timestamp(value).date()


def _as_str(value) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value)


# ═══════════════════════════════════════════════════════════════════════
# TABLE → RECORDS
# ═══════════════════════════════════════════════════════════════════════

def read_areas(frame: pd.DataFrame) -> Dict[int, AreaRecord]:
    """Area records keyed by LocationCode.

    Raises:
        MissingColumns: Required area columns absent.
        ValueError: A LocationCode maps to more than one Section.
    """
    check_columns(
        frame,
        ['SAR', 'Region', 'RegionName', 'StatArea', 'Section', 'LocationCode'],
        'areas',
    )
    areas: Dict[int, AreaRecord] = {}
    for row in frame.to_dict('records'):
        rec = AreaRecord(
            sar=as_int(row['SAR']),
            region=str(row['Region']),
            region_name=str(row['RegionName']),
            stat_area=as_int(row['StatArea']),
            group=_as_str(row.get('Group')),
            section=as_int(row['Section']),
            location_code=as_int(row['LocationCode']),
            location_name=_as_str(row.get('LocationName')) or '',
            pool=as_int(row.get('Pool')),
            eastings=as_float(row.get('Eastings')),
            northings=as_float(row.get('Northings')),
            longitude=as_float(row.get('Longitude')),
            latitude=as_float(row.get('Latitude')),
        )
        prev = areas.get(rec.location_code)
        if prev is not None and (prev.section, prev.region) != (rec.section, rec.region):
            raise ValueError(
                f"LocationCode {rec.location_code} maps to more than one Section"
            )
        areas[rec.location_code] = rec
    return areas


def read_surface(frame: pd.DataFrame) -> List[SurfaceObservation]:
    """Surface records. Needs Intensity and/or EggLayers columns."""
    check_columns(frame, SURFACE_COLUMNS, 'surface')
    if 'Intensity' not in frame.columns and 'EggLayers' not in frame.columns:
        raise MissingColumns('surface', ['Intensity', 'EggLayers'])
    return [
        SurfaceObservation(
            year=as_int(row['Year']),
            location_code=as_int(row['LocationCode']),
            spawn_number=as_int(row['SpawnNumber']),
            start=_as_date(row['Start']),
            end=_as_date(row['End']),
            length=as_float(row['Length']),
            width=as_float(row['Width']),
            intensity=as_int(row.get('Intensity')),
            egg_layers=as_float(row.get('EggLayers')),
            depth=as_float(row.get('Depth')),
            method=_as_str(row.get('Method')) or 'Surface',
        )
        for row in frame.to_dict('records')
    ]


def read_macrocystis(frame: pd.DataFrame) -> List[MacrocystisObservation]:
    check_columns(frame, MACROCYSTIS_COLUMNS, 'macrocystis')
    return [
        MacrocystisObservation(
            year=as_int(row['Year']),
            location_code=as_int(row['LocationCode']),
            spawn_number=as_int(row['SpawnNumber']),
            transect=as_int(row['Transect']),
            start=_as_date(row['Start']),
            end=_as_date(row['End']),
            length=as_float(row['Length']),
            width=as_float(row['Width']),
            plants=as_float(row['Plants']),
            cover=as_float(row['Cover']),
            height=as_float(row['Height']),
            stalks_per_plant=as_float(row['StalksPerPlant']),
            egg_layers=as_float(row['EggLayers']),
        )
        for row in frame.to_dict('records')
    ]


def read_understory(frame: pd.DataFrame) -> List[UnderstoryObservation]:
    check_columns(frame, UNDERSTORY_COLUMNS, 'understory')
    return [
        UnderstoryObservation(
            year=as_int(row['Year']),
            location_code=as_int(row['LocationCode']),
            spawn_number=as_int(row['SpawnNumber']),
            transect=as_int(row['Transect']),
            station=as_int(row['Station']),
            start=_as_date(row['Start']),
            end=_as_date(row['End']),
            length=as_float(row['Length']),
            width=as_float(row['Width']),
            substrate_type=_as_str(row['SubstrateType']),
            egg_layers=as_float(row['EggLayers']),
            cover=as_float(row['Cover']),
        )
        for row in frame.to_dict('records')
    ]


# ═══════════════════════════════════════════════════════════════════════
# AREA WRANGLING
# ═══════════════════════════════════════════════════════════════════════

def assign_groups(
    areas: pd.DataFrame,
    groups: Optional[pd.DataFrame],
    advisories=None,
) -> pd.DataFrame:
    """Attach a Group column to the area table.

    Args:
        areas: Area table (StatArea, Section, LocationCode, ...).
        groups: Table with a Group column and one or more of StatArea,
            Section, LocationCode; None leaves every Group missing.
        advisories: Optional Advisories; notified when some, but not all,
            Sections are missing a Group.

    Returns:
        New area table; the input is not modified.
    """
    check_columns(areas, ['StatArea', 'Section', 'LocationCode'], 'areas')
    res = areas.drop(columns=['Group'], errors='ignore')
    if groups is None:
        res = res.assign(Group=np.nan)
    else:
        check_columns(groups, ['Group'], 'groups')
        by = [c for c in ('StatArea', 'Section', 'LocationCode') if c in groups.columns]
        if not by:
            raise MissingColumns('groups', ['StatArea', 'Section', 'LocationCode'])
        res = res.merge(groups[by + ['Group']], on=by, how='left')
    if advisories is not None and res['Group'].isna().any():
        grp_u = (
            res[['StatArea', 'Section', 'Group']]
            .drop_duplicates()
            .sort_values(['StatArea', 'Section'])
        )
        grp_u_na = grp_u[grp_u['Group'].isna()]
        if len(grp_u) != len(grp_u_na):
            advisories.add(
                "Incomplete `Group` info for Section(s): "
                f"{paste_nicely(sorted(grp_u_na['Section'].unique()))}"
            )
    return res


def subset_sections(
    areas: pd.DataFrame,
    sections: Optional[Iterable[int]],
    advisories=None,
) -> pd.DataFrame:
    """Keep only the listed Sections (None keeps all)."""
    if sections is None:
        return areas
    check_columns(areas, ['Section'], 'areas')
    sections = sorted(set(int(s) for s in sections))
    if advisories is not None:
        advisories.add(f"Sections: {paste_nicely(sections)}")
    return areas[areas['Section'].isin(sections)].reset_index(drop=True)


def join_all_spawn(
    spawn: pd.DataFrame,
    stations: pd.DataFrame,
    areas: pd.DataFrame,
    years: Iterable[int],
    ft2m: float = 0.3048,
    window: Optional[YearsSection] = None,
    advisories=None,
) -> pd.DataFrame:
    """Spawn events with area information and maximum station depth.

    Station depths are recorded in feet below chart datum; they are
    converted to metres (negative down) and the maximum per spawn is kept.

    Args:
        spawn: Year, LocationCode, SpawnNumber, Start, End, Length, Width, Method.
        stations: Year, LocationCode, SpawnNumber, Depth (ft).
        areas: Area table.
        years: Years to include.
        ft2m: Feet to metres.
        window: Assessment window for the year check (default YearsSection()).
        advisories: Optional Advisories for year and unit checks.

    Returns:
        One row per spawn event, sorted by Year, Region, StatArea, Section,
        LocationCode, SpawnNumber, Start.
    """
    check_columns(
        spawn,
        ['Year', 'LocationCode', 'SpawnNumber', 'Start', 'End', 'Length',
         'Width', 'Method'],
        'spawn',
    )
    check_columns(stations, ['Year', 'LocationCode', 'SpawnNumber', 'Depth'], 'stations')
    check_columns(
        areas,
        ['Region', 'StatArea', 'Group', 'Section', 'LocationCode',
         'LocationName', 'Eastings', 'Northings', 'Longitude', 'Latitude'],
        'areas',
    )
    years = list(years)
    if advisories is not None:
        check_years(years, window or YearsSection(), advisories)
        check_ft2m(ft2m, advisories)

    areas_sm = areas[
        ['Region', 'StatArea', 'Group', 'Section', 'LocationCode',
         'LocationName', 'Eastings', 'Northings', 'Longitude', 'Latitude']
    ].drop_duplicates()
    keys = ['Year', 'LocationCode', 'SpawnNumber']

    events = spawn[
        spawn['Year'].isin(years)
        & spawn['LocationCode'].isin(areas_sm['LocationCode'])
    ][keys + ['Start', 'End', 'Length', 'Width', 'Method']].copy()
    events['Start'] = pd.to_datetime(events['Start'])
    events['End'] = pd.to_datetime(events['End'])
    events['Method'] = events['Method'].str.title()

    depth = stations[stations['LocationCode'].isin(areas_sm['LocationCode'])].copy()
    depth['Depth'] = depth['Depth'] * ft2m * -1
    depth = depth.groupby(keys, as_index=False)['Depth'].max()

    res = (
        events.merge(depth, on=keys, how='left')
        .merge(areas_sm, on='LocationCode', how='left')
    )
    res = res[
        ['Year', 'Region', 'StatArea', 'Group', 'Section', 'LocationCode',
         'LocationName', 'SpawnNumber', 'Eastings', 'Northings', 'Longitude',
         'Latitude', 'Start', 'End', 'Length', 'Width', 'Depth', 'Method']
    ]
    return res.sort_values(
        ['Year', 'Region', 'StatArea', 'Section', 'LocationCode',
         'SpawnNumber', 'Start'],
        kind='mergesort',
    ).reset_index(drop=True)
