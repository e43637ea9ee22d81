"""Eggs ⇄ spawning biomass conversion.

theta (eggs per tonne of spawners) = 1000 × omega × female
  omega:  eggs per kg of female (200,000)
  female: female proportion by weight (0.5)
giving the literature value theta = 10⁸ eggs/t.

Spawn-on-kelp (SOK) product is converted back to the spawning biomass that
produced it: product weight less the kelp, less brine uptake, divided by
the weight of one egg gives eggs, and eggs / theta gives tonnes.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd

from spawn_index.config import CalculationConfig, SokSection, default_config
from spawn_index.diagnostics import Advisories, check_years, ensure_advisories
from spawn_index.errors import InvalidConversionFactor, InvalidMeasurement
from spawn_index.tables import check_columns
from spawn_index.types import IndexResult

THETA_DEFAULT = 1.0e8       # Eggs per tonne (Hay 1985)
THETA_FLAG_RATIO = 2.0      # Advisory when theta is off by more than this factor

ArrayLike = Union[float, np.ndarray]


def eggs_to_biomass_factor(omega: float = 200000.0, female: float = 0.5) -> float:
    """theta: eggs per tonne of spawners.

    Examples:
        eggs_to_biomass_factor()  # 1e8
    """
    if omega <= 0 or not (0 < female <= 1):
        raise InvalidConversionFactor(
            f"omega must be > 0 and female in (0, 1], got {omega}, {female}"
        )
    return 1000.0 * omega * female


def check_theta(theta: Optional[float], advisories: Optional[Advisories] = None) -> float:
    """Validate theta; flag values far from the literature default.

    Raises:
        InvalidConversionFactor: theta missing, non-finite, or <= 0.
    """
    if theta is None:
        raise InvalidConversionFactor("theta is missing")
    theta = float(theta)
    if not math.isfinite(theta) or theta <= 0:
        raise InvalidConversionFactor(f"theta must be > 0, got {theta}")
    if advisories is not None:
        ratio = theta / THETA_DEFAULT
        if ratio > THETA_FLAG_RATIO or ratio < 1.0 / THETA_FLAG_RATIO:
            advisories.add(
                f"`theta` ({theta:.4g} eggs/t) is far from {THETA_DEFAULT:.0e}."
            )
    return theta


def eggs_to_biomass(eggs: ArrayLike, theta: float = THETA_DEFAULT) -> ArrayLike:
    """Spawning biomass (t) from total eggs."""
    return eggs / check_theta(theta)


def biomass_to_eggs(biomass: ArrayLike, theta: float = THETA_DEFAULT) -> ArrayLike:
    """Total eggs from spawning biomass (t)."""
    return biomass * check_theta(theta)


# ═══════════════════════════════════════════════════════════════════════
# SPAWN-ON-KELP
# ═══════════════════════════════════════════════════════════════════════

def sok_eggs_per_kg(
    nu: float = 0.12,
    upsilon: float = 1.13,
    egg_weight: float = 2.38e-6,
) -> float:
    """Eggs per kg of SOK product.

    (1 − nu) / (upsilon × egg_weight)  ≈ 327,210 eggs/kg with defaults.

    Args:
        nu: Kelp proportion of product weight.
        upsilon: Brine weight gain factor (product weight / egg weight).
        egg_weight: Weight of one egg (kg).
    """
    if not (0 <= nu < 1) or upsilon <= 0 or egg_weight <= 0:
        raise InvalidMeasurement(
            f"SOK constants out of range: nu={nu}, upsilon={upsilon}, "
            f"egg_weight={egg_weight}"
        )
    return (1.0 - nu) / (upsilon * egg_weight)


def sok_to_biomass(
    product_kg: ArrayLike,
    theta: float = THETA_DEFAULT,
    sok: Optional[SokSection] = None,
) -> ArrayLike:
    """Spawning biomass (t) that produced ``product_kg`` of SOK.

    Examples:
        sok_to_biomass(100)  # ≈ 0.327
    """
    sok = sok or SokSection()
    kg = np.asarray(product_kg, dtype=np.float64)
    if np.any(np.isnan(kg)) or np.any(kg < 0):
        raise InvalidMeasurement(f"product mass must be >= 0, got {product_kg}")
    eggs = kg * sok_eggs_per_kg(sok.nu, sok.upsilon, sok.egg_weight)
    sb = eggs_to_biomass(eggs, theta)
    return float(sb) if sb.ndim == 0 else sb


def calc_sok_index(
    harvest: pd.DataFrame,
    years: Optional[Iterable[int]] = None,
    config: Optional[CalculationConfig] = None,
    quiet: bool = False,
    advisories: Optional[Advisories] = None,
) -> IndexResult:
    """Spawning biomass from SOK harvest records.

    Args:
        harvest: Year, Region, ProductKg, plus any area columns to keep
            (StatArea, Section, LocationCode, ...). Rows are summed per
            distinct combination of the non-ProductKg columns.
        years: Years to include (None = all).

    Returns:
        IndexResult with ProductKg, Eggs, and SokSB (t) columns.
    """
    config = config or default_config()
    adv = ensure_advisories(advisories, quiet)
    start = len(adv)
    check_columns(harvest, ['Year', 'Region', 'ProductKg'], 'harvest')
    check_years(years, config.years, adv)
    theta = check_theta(config.theta, adv)

    frame = harvest
    if years is not None:
        frame = frame[frame['Year'].isin(list(years))]
    keys = [c for c in frame.columns if c != 'ProductKg']
    frame = (
        frame.groupby(keys, as_index=False, dropna=False)['ProductKg']
        .sum()
        .sort_values(keys, kind='mergesort')
        .reset_index(drop=True)
    )
    eggs_per_kg = sok_eggs_per_kg(config.sok.nu, config.sok.upsilon, config.sok.egg_weight)
    frame['Eggs'] = frame['ProductKg'] * eggs_per_kg
    frame['SokSB'] = sok_to_biomass(frame['ProductKg'].to_numpy(), theta, config.sok)
    return IndexResult(
        frame=frame,
        value_col='SokSB',
        theta=theta,
        messages=adv.messages[start:],
    )
