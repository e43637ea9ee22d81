"""Egg density estimators for the three spawn survey methods.

All estimators return egg density in thousands of eggs per square metre
(10³ eggs/m²), accept floats or NumPy arrays, and have no side effects.

References:
  - Schweigert 1993: surface egg density regression
  - Haegele & Schweigert 1990: Macrocystis eggs per plant
  - Haegele et al. 1979; Schweigert 2005: understory substrate and algae
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

import numpy as np

from spawn_index.config import UnderstorySection
from spawn_index.errors import InvalidMeasurement, UnknownSubstrate

ArrayLike = Union[float, np.ndarray]


def _check_nonnegative(name: str, value: ArrayLike) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if np.any(np.isnan(arr)):
        raise InvalidMeasurement(f"{name} is missing")
    if np.any(arr < 0):
        raise InvalidMeasurement(f"{name} must be >= 0, got {value}")
    return arr


def _check_fraction(name: str, value: ArrayLike) -> np.ndarray:
    arr = _check_nonnegative(name, value)
    if np.any(arr > 1):
        raise InvalidMeasurement(f"{name} must be in [0, 1], got {value}")
    return arr


def _unwrap(arr: np.ndarray) -> ArrayLike:
    return float(arr) if arr.ndim == 0 else arr


# ═══════════════════════════════════════════════════════════════════════
# SURFACE
# ═══════════════════════════════════════════════════════════════════════

def surface_egg_density(
    egg_layers: ArrayLike,
    alpha: float = 14.698,
    beta: float = 212.218,
) -> ArrayLike:
    """Surface egg density from egg layers.

    D = alpha + beta × L for L > 0; no layers means no eggs (D = 0).

    Args:
        egg_layers: Egg layers (≥ 0), recorded or resolved from intensity.
        alpha: Regression intercept (10³ eggs/m²).
        beta: Eggs per layer (10³ eggs/m²).

    Returns:
        Egg density (10³ eggs/m²).

    Examples:
        surface_egg_density(4)  # 863.57
        surface_egg_density(0)  # 0.0
    """
    layers = _check_nonnegative("egg_layers", egg_layers)
    dens = np.where(layers > 0, alpha + beta * layers, 0.0)
    return _unwrap(dens)


# ═══════════════════════════════════════════════════════════════════════
# MACROCYSTIS
# ═══════════════════════════════════════════════════════════════════════

def macrocystis_eggs_per_plant(
    height: ArrayLike,
    egg_layers: ArrayLike,
    stalks_per_plant: ArrayLike,
    beta: float = 0.073,
    gamma: float = 0.673,
    delta: float = 0.932,
    epsilon: float = 0.703,
) -> ArrayLike:
    """Eggs on one Macrocystis plant.

    E = beta × H^gamma × L^delta × S^epsilon × 1000

    Args:
        height: Plant height (m).
        egg_layers: Egg layers on the plant.
        stalks_per_plant: Stalks (stipes) per plant.

    Returns:
        Eggs per plant (raw count).
    """
    h = _check_nonnegative("height", height)
    lyr = _check_nonnegative("egg_layers", egg_layers)
    s = _check_nonnegative("stalks_per_plant", stalks_per_plant)
    eggs = beta * h ** gamma * lyr ** delta * s ** epsilon * 1000.0
    return _unwrap(eggs)


def macrocystis_egg_density(
    plants: ArrayLike,
    cover: ArrayLike,
    height: ArrayLike,
    egg_layers: ArrayLike,
    stalks_per_plant: ArrayLike,
    area: ArrayLike,
    beta: float = 0.073,
    gamma: float = 0.673,
    delta: float = 0.932,
    epsilon: float = 0.703,
) -> ArrayLike:
    """Macrocystis egg density over a surveyed substrate area.

    D = plants × cover × E(H, L, S) / area / 1000

    Args:
        plants: Plants counted in the area.
        cover: Proportion of counted plants bearing eggs, in [0, 1].
        height, egg_layers, stalks_per_plant: See macrocystis_eggs_per_plant.
        area: Surveyed area (m², > 0).

    Returns:
        Egg density (10³ eggs/m²).
    """
    n = _check_nonnegative("plants", plants)
    p = _check_fraction("cover", cover)
    a = _check_nonnegative("area", area)
    if np.any(a == 0):
        raise InvalidMeasurement("area must be > 0")
    per_plant = macrocystis_eggs_per_plant(
        height, egg_layers, stalks_per_plant,
        beta=beta, gamma=gamma, delta=delta, epsilon=epsilon,
    )
    dens = n * p * np.asarray(per_plant) / a / 1000.0
    return _unwrap(dens)


# ═══════════════════════════════════════════════════════════════════════
# UNDERSTORY
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SubstrateModel:
    """Linear egg density model for one substrate or algae type.

    D = alpha + beta × (L^layer_exp × cover^cover_exp)
    """
    alpha: float
    beta: float
    layer_exp: float = 1.0
    cover_exp: float = 1.0

    def cover_metric(self, egg_layers: ArrayLike, cover: ArrayLike) -> np.ndarray:
        lyr = np.asarray(egg_layers, dtype=np.float64)
        p = np.asarray(cover, dtype=np.float64)
        return lyr ** self.layer_exp * p ** self.cover_exp


def understory_models(cfg: UnderstorySection) -> Mapping[str, SubstrateModel]:
    """Per-type understory models from configuration.

    The bottom substrate entry is linear in layers × cover; each algae type
    shares the power model, scaled by its algae coefficient.
    """
    models = {cfg.substrate_code: SubstrateModel(alpha=0.0, beta=cfg.varsigma)}
    for alg, coef in cfg.algae_coefs.items():
        models[alg] = SubstrateModel(
            alpha=0.0,
            beta=cfg.xi * coef,
            layer_exp=cfg.upsilon,
            cover_exp=cfg.varphi,
        )
    return MappingProxyType(models)


def understory_egg_density(
    substrate_type: str,
    egg_layers: ArrayLike,
    cover: ArrayLike,
    models: Mapping[str, SubstrateModel],
) -> ArrayLike:
    """Understory egg density contributed by one substrate/algae entry.

    Args:
        substrate_type: Key into ``models`` (e.g. 'SUB', 'KS', 'GG').
        egg_layers: Egg layers on the substrate (≥ 0).
        cover: Proportion of the quadrat covered, in [0, 1].
        models: Output of understory_models().

    Returns:
        Egg density (10³ eggs/m²).

    Raises:
        UnknownSubstrate: No model for substrate_type.
    """
    try:
        model = models[substrate_type]
    except KeyError:
        raise UnknownSubstrate(
            f"no egg density coefficients for substrate type '{substrate_type}'"
        ) from None
    lyr = _check_nonnegative("egg_layers", egg_layers)
    p = _check_fraction("cover", cover)
    dens = model.alpha + model.beta * model.cover_metric(lyr, p)
    return _unwrap(dens)
