"""Spawn index calculations: per-spawn eggs and biomass for each survey method.

Pipeline per spawn event (Year × LocationCode × SpawnNumber):

  Surface:      layers (recorded or from intensity) → egg density
                eggs = density × 1000 × Length × median width
  Macrocystis:  transect density from plants, height, stalks, layers
                eggs = mean density × 1000 × Length × mean transect width
  Understory:   quadrat density summed over substrate/algae entries
                eggs = width-weighted density × 1000 × Length × mean width

then index (t) = eggs / theta. Densities are in 10³ eggs/m², hence the
factor of 1000 to get raw eggs.

Events missing Start/End dates or required measurements are excluded with
one advisory each. Validation errors (bad categories, substrate types,
widths, conversion factor) propagate to the caller.

Every event is computed independently from immutable inputs; results are
sorted by Year, Region, StatArea, Section, LocationCode, SpawnNumber.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from spawn_index.config import CalculationConfig, default_config
from spawn_index.conversion import check_theta
from spawn_index.density import (
    macrocystis_egg_density,
    surface_egg_density,
    understory_egg_density,
    understory_models,
)
from spawn_index.diagnostics import Advisories, check_years, ensure_advisories
from spawn_index.errors import MissingColumns, SpawnIndexError
from spawn_index.intensity import DEFAULT_LAYERS, LayerTable, classify_measurement, resolve_egg_layers
from spawn_index.tables import read_areas, read_macrocystis, read_surface, read_understory
from spawn_index.types import (
    INDEX_KEYS,
    AreaRecord,
    IndexResult,
    MacrocystisObservation,
    SpawnKey,
    SurfaceObservation,
    UnderstoryObservation,
)
from spawn_index.width import WidthTables, resolve_width_level

AreasLike = Union[pd.DataFrame, Mapping[int, AreaRecord]]

SURFACE_COLUMNS = INDEX_KEYS + [
    'Group', 'Length', 'Width', 'WidthObs', 'WidthLevel', 'EggLyrs',
    'EggDens', 'Eggs', 'SurfSI',
]
MACROCYSTIS_COLUMNS = INDEX_KEYS + [
    'Group', 'LengthMacro', 'WidthMacro', 'EggDens', 'Eggs', 'MacroSI',
]
UNDERSTORY_COLUMNS = INDEX_KEYS + [
    'Group', 'LengthAlgae', 'WidthAlgae', 'EggDens', 'Eggs', 'UnderSI',
]


# ═══════════════════════════════════════════════════════════════════════
# SHARED HELPERS
# ═══════════════════════════════════════════════════════════════════════

def _as_areas(areas: AreasLike) -> Mapping[int, AreaRecord]:
    if isinstance(areas, pd.DataFrame):
        return read_areas(areas)
    return areas


def _describe(key: SpawnKey) -> str:
    year, loc, spawn = key
    return f"Year {year}, LocationCode {loc}, SpawnNumber {spawn}"


def _group_events(records: Iterable, years: Optional[Iterable[int]]) -> List[Tuple[SpawnKey, list]]:
    """Records grouped by spawn key, in key order."""
    wanted = None if years is None else set(int(y) for y in years)
    events: Dict[SpawnKey, list] = defaultdict(list)
    for rec in records:
        if wanted is not None and rec.year not in wanted:
            continue
        events[rec.key].append(rec)
    return sorted(events.items())


def _missing_dates(rows) -> bool:
    return any(r.start is None or r.end is None for r in rows)


def _exclude(adv: Advisories, method: str, key: SpawnKey, reason: str) -> None:
    adv.add(f"{method} spawn excluded ({_describe(key)}): {reason}.")


def _area_columns(area: AreaRecord, key: SpawnKey) -> Dict:
    year, loc, spawn = key
    return {
        'Year': year,
        'Region': area.region,
        'StatArea': area.stat_area,
        'Section': area.section,
        'LocationCode': loc,
        'SpawnNumber': spawn,
        'Group': area.group,
    }


def _with_context(key: SpawnKey, err: SpawnIndexError) -> SpawnIndexError:
    """Same error type, prefixed with the spawn event it came from."""
    if isinstance(err, MissingColumns):
        return err
    return type(err)(f"{_describe(key)}: {err}")


def _to_frame(rows: List[Dict], columns: Sequence[str]) -> pd.DataFrame:
    frame = pd.DataFrame(rows, columns=list(columns))
    return frame.sort_values(INDEX_KEYS, kind='mergesort').reset_index(drop=True)


def _prepare(
    config: Optional[CalculationConfig],
    years: Optional[Iterable[int]],
    quiet: bool,
    advisories: Optional[Advisories],
) -> Tuple[CalculationConfig, Advisories, int, float, Optional[List[int]]]:
    """Resolve config and collector, run the shared checks.

    Also returns the position of this call's first message in the
    collector; results report only their own messages.
    """
    config = config or default_config()
    adv = ensure_advisories(advisories, quiet)
    start = len(adv)
    years = None if years is None else list(years)
    check_years(years, config.years, adv)
    theta = check_theta(config.theta, adv)
    return config, adv, start, theta, years


# ═══════════════════════════════════════════════════════════════════════
# SURFACE
# ═══════════════════════════════════════════════════════════════════════

def _surface_event(
    key: SpawnKey,
    rows: List[SurfaceObservation],
    area: AreaRecord,
    widths: WidthTables,
    layer_table: LayerTable,
    config: CalculationConfig,
    theta: float,
    adv: Advisories,
) -> Optional[Dict]:
    if _missing_dates(rows):
        _exclude(adv, 'Surface', key, 'missing Start or End date')
        return None
    lengths = [r.length for r in rows if r.length is not None]
    if not lengths:
        _exclude(adv, 'Surface', key, 'missing Length')
        return None
    measurements = [
        classify_measurement(r.year, r.intensity, r.egg_layers, config.years)
        for r in rows
    ]
    if any(m is None for m in measurements):
        _exclude(adv, 'Surface', key, 'missing egg layers')
        return None

    layers = float(np.mean([
        resolve_egg_layers(m, key[0], config.years, layer_table)
        for m in measurements
    ]))
    width, level = resolve_width_level(area.region, area.section, area.pool, widths)
    length = max(lengths)
    dens = surface_egg_density(layers, config.surface.alpha, config.surface.beta)
    eggs = dens * 1000.0 * length * width
    obs_widths = [r.width for r in rows if r.width is not None]

    row = _area_columns(area, key)
    row.update({
        'Length': length,
        'Width': width,
        'WidthObs': max(obs_widths) if obs_widths else np.nan,
        'WidthLevel': level,
        'EggLyrs': layers,
        'EggDens': dens,
        'Eggs': eggs,
        'SurfSI': eggs / theta,
    })
    return row


def calc_surface_index(
    surface: Union[pd.DataFrame, Sequence[SurfaceObservation]],
    areas: AreasLike,
    widths: WidthTables,
    intensity: LayerTable = DEFAULT_LAYERS,
    years: Optional[Iterable[int]] = None,
    config: Optional[CalculationConfig] = None,
    quiet: bool = False,
    advisories: Optional[Advisories] = None,
) -> IndexResult:
    """Surface spawn index per spawn event.

    Egg layers come from the recorded layers, or from the intensity rating
    for years before layers were recorded. Area is Length × the median
    pool/section/region width; the observed width is kept as WidthObs but
    not used.

    Args:
        surface: Surface survey table or SurfaceObservation records.
        areas: Area table or records keyed by LocationCode. Events at
            locations outside ``areas`` are not part of the calculation.
        widths: Median width tables.
        intensity: Intensity category → egg layers.
        years: Years to calculate (None = every year in ``surface``).
        config: Calculation parameters (default_config() if None).
        quiet: Suppress advisories.
        advisories: Collector to append to (e.g. shared across methods).

    Returns:
        IndexResult with SurfSI (t) per spawn.
    """
    config, adv, start, theta, years = _prepare(config, years, quiet, advisories)
    if isinstance(surface, pd.DataFrame):
        surface = read_surface(surface)
    area_map = _as_areas(areas)

    rows = []
    for key, recs in _group_events(surface, years):
        area = area_map.get(key[1])
        if area is None:
            continue
        try:
            row = _surface_event(key, recs, area, widths, intensity, config, theta, adv)
        except SpawnIndexError as err:
            raise _with_context(key, err) from err
        if row is not None:
            rows.append(row)
    return IndexResult(
        frame=_to_frame(rows, SURFACE_COLUMNS),
        value_col='SurfSI',
        theta=theta,
        messages=adv.messages[start:],
    )


# ═══════════════════════════════════════════════════════════════════════
# MACROCYSTIS
# ═══════════════════════════════════════════════════════════════════════

def _macrocystis_event(
    key: SpawnKey,
    rows: List[MacrocystisObservation],
    area: AreaRecord,
    config: CalculationConfig,
    theta: float,
    adv: Advisories,
) -> Optional[Dict]:
    if _missing_dates(rows):
        _exclude(adv, 'Macrocystis', key, 'missing Start or End date')
        return None
    required = ('length', 'width', 'plants', 'cover', 'height',
                'stalks_per_plant', 'egg_layers')
    if any(getattr(r, f) is None for r in rows for f in required):
        _exclude(adv, 'Macrocystis', key, 'missing transect measurements')
        return None

    m = config.macrocystis
    transect_widths = np.array([r.width for r in rows])
    dens = macrocystis_egg_density(
        plants=np.array([r.plants for r in rows]),
        cover=np.array([r.cover for r in rows]),
        height=np.array([r.height for r in rows]),
        egg_layers=np.array([r.egg_layers for r in rows]),
        stalks_per_plant=np.array([r.stalks_per_plant for r in rows]),
        area=transect_widths * m.transect_swath,
        beta=m.beta, gamma=m.gamma, delta=m.delta, epsilon=m.epsilon,
    )
    length = max(r.length for r in rows)
    width = float(transect_widths.mean())
    egg_dens = float(np.mean(dens))
    eggs = egg_dens * 1000.0 * length * width

    row = _area_columns(area, key)
    row.update({
        'LengthMacro': length,
        'WidthMacro': width,
        'EggDens': egg_dens,
        'Eggs': eggs,
        'MacroSI': eggs / theta,
    })
    return row


def calc_macrocystis_index(
    macrocystis: Union[pd.DataFrame, Sequence[MacrocystisObservation]],
    areas: AreasLike,
    years: Optional[Iterable[int]] = None,
    config: Optional[CalculationConfig] = None,
    quiet: bool = False,
    advisories: Optional[Advisories] = None,
) -> IndexResult:
    """Macrocystis spawn index per spawn event.

    Each transect's density is plants × cover × eggs per plant over the
    transect area (width × swath); the spawn's density is the mean over
    transects, applied to Length × mean transect width.

    Returns:
        IndexResult with MacroSI (t) per spawn.
    """
    config, adv, start, theta, years = _prepare(config, years, quiet, advisories)
    if isinstance(macrocystis, pd.DataFrame):
        macrocystis = read_macrocystis(macrocystis)
    area_map = _as_areas(areas)

    rows = []
    for key, recs in _group_events(macrocystis, years):
        area = area_map.get(key[1])
        if area is None:
            continue
        try:
            row = _macrocystis_event(key, recs, area, config, theta, adv)
        except SpawnIndexError as err:
            raise _with_context(key, err) from err
        if row is not None:
            rows.append(row)
    return IndexResult(
        frame=_to_frame(rows, MACROCYSTIS_COLUMNS),
        value_col='MacroSI',
        theta=theta,
        messages=adv.messages[start:],
    )


# ═══════════════════════════════════════════════════════════════════════
# UNDERSTORY
# ═══════════════════════════════════════════════════════════════════════

def _understory_event(
    key: SpawnKey,
    rows: List[UnderstoryObservation],
    area: AreaRecord,
    models,
    theta: float,
    adv: Advisories,
) -> Optional[Dict]:
    if _missing_dates(rows):
        _exclude(adv, 'Understory', key, 'missing Start or End date')
        return None
    required = ('length', 'width', 'substrate_type', 'egg_layers', 'cover')
    if any(getattr(r, f) is None for r in rows for f in required):
        _exclude(adv, 'Understory', key, 'missing quadrat measurements')
        return None

    # Quadrat density: sum over substrate and algae entries
    quadrats: Dict[Tuple[int, int], float] = defaultdict(float)
    transect_width: Dict[int, float] = {}
    for r in rows:
        quadrats[(r.transect, r.station)] += understory_egg_density(
            r.substrate_type, r.egg_layers, r.cover, models,
        )
        transect_width[r.transect] = max(r.width, transect_width.get(r.transect, 0.0))

    by_transect: Dict[int, List[float]] = defaultdict(list)
    for (transect, _station), dens in sorted(quadrats.items()):
        by_transect[transect].append(dens)
    transects = sorted(by_transect)
    t_dens = np.array([np.mean(by_transect[t]) for t in transects])
    t_width = np.array([transect_width[t] for t in transects])

    if t_width.sum() > 0:
        egg_dens = float(np.average(t_dens, weights=t_width))
    else:
        egg_dens = float(t_dens.mean())
    length = max(r.length for r in rows)
    width = float(t_width.mean())
    eggs = egg_dens * 1000.0 * length * width

    row = _area_columns(area, key)
    row.update({
        'LengthAlgae': length,
        'WidthAlgae': width,
        'EggDens': egg_dens,
        'Eggs': eggs,
        'UnderSI': eggs / theta,
    })
    return row


def calc_understory_index(
    understory: Union[pd.DataFrame, Sequence[UnderstoryObservation]],
    areas: AreasLike,
    years: Optional[Iterable[int]] = None,
    config: Optional[CalculationConfig] = None,
    quiet: bool = False,
    advisories: Optional[Advisories] = None,
) -> IndexResult:
    """Understory spawn index per spawn event.

    Quadrat densities are summed over substrate/algae entries, averaged per
    transect, then weighted by transect width across the spawn.

    Returns:
        IndexResult with UnderSI (t) per spawn.
    """
    config, adv, start, theta, years = _prepare(config, years, quiet, advisories)
    if isinstance(understory, pd.DataFrame):
        understory = read_understory(understory)
    area_map = _as_areas(areas)
    models = understory_models(config.understory)

    rows = []
    for key, recs in _group_events(understory, years):
        area = area_map.get(key[1])
        if area is None:
            continue
        try:
            row = _understory_event(key, recs, area, models, theta, adv)
        except SpawnIndexError as err:
            raise _with_context(key, err) from err
        if row is not None:
            rows.append(row)
    return IndexResult(
        frame=_to_frame(rows, UNDERSTORY_COLUMNS),
        value_col='UnderSI',
        theta=theta,
        messages=adv.messages[start:],
    )


# ═══════════════════════════════════════════════════════════════════════
# COMBINING AND AGGREGATING
# ═══════════════════════════════════════════════════════════════════════

def calc_total_index(*results: IndexResult) -> IndexResult:
    """Total spawn index per spawn: sum of the method indices.

    Methods that didn't survey a spawn contribute zero.

    Raises:
        ValueError: No results, or results computed with different theta.
    """
    if not results:
        raise ValueError("calc_total_index needs at least one IndexResult")
    thetas = {r.theta for r in results}
    if len(thetas) != 1:
        raise ValueError(f"results use different theta values: {sorted(thetas)}")
    theta = thetas.pop()

    total = None
    for res in results:
        part = res.frame[INDEX_KEYS + ['Eggs', res.value_col]].rename(
            columns={'Eggs': f'Eggs_{res.value_col}'}
        )
        total = part if total is None else total.merge(part, on=INDEX_KEYS, how='outer')

    value_cols = [r.value_col for r in results]
    egg_cols = [f'Eggs_{c}' for c in value_cols]
    total[value_cols + egg_cols] = total[value_cols + egg_cols].fillna(0.0)
    total['Eggs'] = total[egg_cols].sum(axis=1)
    total['TotalSI'] = total['Eggs'] / theta
    frame = total[INDEX_KEYS + value_cols + ['Eggs', 'TotalSI']]

    messages: List[str] = []
    for res in results:
        messages.extend(m for m in res.messages if m not in messages)
    return IndexResult(
        frame=_to_frame(frame.to_dict('records'), frame.columns),
        value_col='TotalSI',
        theta=theta,
        messages=messages,
    )


def aggregate_index(
    result: IndexResult,
    by: Sequence[str] = ('Year', 'LocationCode', 'SpawnNumber'),
    theta: Optional[float] = None,
) -> pd.DataFrame:
    """Sum eggs to a reporting key and convert to biomass.

    Args:
        result: Output of a calc_*_index function.
        by: Grouping columns, e.g. ('Year', 'Region') or ('Year', 'Section').
        theta: Conversion factor; defaults to the one used for ``result``.

    Returns:
        Table with ``by`` columns, Eggs, and the index column (t), sorted by
        ``by``.
    """
    by = list(by)
    missing = set(by) - set(result.frame.columns)
    if missing:
        raise MissingColumns('result', missing)
    theta = check_theta(result.theta if theta is None else theta)
    agg = (
        result.frame.groupby(by, as_index=False, dropna=False)['Eggs']
        .sum()
        .sort_values(by, kind='mergesort')
        .reset_index(drop=True)
    )
    agg[result.value_col] = agg['Eggs'] / theta
    return agg
