"""Configuration system for SpawnIndex.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → override.yaml → programmatic overrides

Every section default is the published value, so ``default_config()`` gives
the standard assessment parameters without any file.

References:
  - Schweigert 1993 (surface), Haegele & Schweigert 1990 (Macrocystis)
  - Haegele et al. 1979, Schweigert 2005 (understory)
  - Hay 1985 (eggs per kg of female, female proportion)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class YearsSection:
    """Survey program era boundaries.

    Recording conventions:
      [survey_start, intensity_change)  5-category intensity ratings
      [intensity_change, layers_start)  9-category intensity ratings
      [layers_start, ...)               egg layers recorded directly

    Ratings inside [rescale_start, rescale_end) are remapped from the
    5-category scale onto the 9-category scale before layer lookup.
    """
    survey_start: int = 1951
    intensity_change: int = 1969
    layers_start: int = 1979
    assess: int = 1951               # First year of the assessment window
    assess_end: Optional[int] = None  # Last year of the window (None = open)
    rescale_start: int = 1951
    rescale_end: int = 1969


@dataclass
class ConversionSection:
    """Eggs-to-biomass conversion."""
    omega: float = 200000.0       # Eggs per kg of female spawner
    female: float = 0.5           # Female proportion (by weight)
    theta: Optional[float] = None  # Eggs per tonne; None = 1000 × omega × female
    ft2m: float = 0.3048          # Feet to metres


@dataclass
class SurfaceSection:
    """Surface egg density regression (10³ eggs/m²)."""
    alpha: float = 14.698         # Intercept
    beta: float = 212.218         # Per egg layer


@dataclass
class MacrocystisSection:
    """Macrocystis eggs per plant: beta × H^gamma × L^delta × S^epsilon × 1000."""
    beta: float = 0.073
    gamma: float = 0.673          # Plant height exponent
    delta: float = 0.932          # Egg layer exponent
    epsilon: float = 0.703        # Stalks per plant exponent
    transect_swath: float = 2.0   # Transect swath width (m)


def _default_algae_coefs() -> Dict[str, float]:
    return {
        'GG': 0.9715,    # Grunge
        'KS': 0.9119,    # Kelp (standing)
        'LBR': 1.0000,   # Large brown
        'LL': 1.0000,    # Leafy laminarian
        'ST': 1.1766,    # Stringy
    }


@dataclass
class UnderstorySection:
    """Understory egg density.

    Substrate: varsigma × layers × cover
    Algae:     xi × coef × layers^upsilon × cover^varphi
    """
    varsigma: float = 340.0
    xi: float = 600.567
    upsilon: float = 0.6355
    varphi: float = 1.4130
    algae_coefs: Dict[str, float] = field(default_factory=_default_algae_coefs)
    substrate_code: str = 'SUB'


@dataclass
class SokSection:
    """Spawn-on-kelp product conversion."""
    nu: float = 0.12              # Kelp proportion of product weight
    upsilon: float = 1.13         # Brine weight gain factor
    egg_weight: float = 2.38e-6   # Weight of one fertilized egg (kg)


@dataclass
class CalculationConfig:
    """Complete calculation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    years: YearsSection = field(default_factory=YearsSection)
    conversion: ConversionSection = field(default_factory=ConversionSection)
    surface: SurfaceSection = field(default_factory=SurfaceSection)
    macrocystis: MacrocystisSection = field(default_factory=MacrocystisSection)
    understory: UnderstorySection = field(default_factory=UnderstorySection)
    sok: SokSection = field(default_factory=SokSection)

    @property
    def theta(self) -> float:
        """Eggs per tonne of spawners."""
        c = self.conversion
        if c.theta is not None:
            return c.theta
        return 1000.0 * c.omega * c.female


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

_SECTION_MAP = {
    'years': YearsSection,
    'conversion': ConversionSection,
    'surface': SurfaceSection,
    'macrocystis': MacrocystisSection,
    'understory': UnderstorySection,
    'sok': SokSection,
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> CalculationConfig:
    """Convert a merged YAML dict to a CalculationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return CalculationConfig(**sections)


def validate_config(config: CalculationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Era boundaries are ordered
      - Rescale window lies inside the 5-category era
      - Conversion constants are positive, female is a proportion
      - Density model coefficients are positive
    """
    y = config.years
    if not (y.survey_start <= y.intensity_change <= y.layers_start):
        raise ValueError(
            f"years must satisfy survey_start ({y.survey_start}) <= "
            f"intensity_change ({y.intensity_change}) <= "
            f"layers_start ({y.layers_start})"
        )
    if y.rescale_start > y.rescale_end:
        raise ValueError(
            f"years.rescale_start ({y.rescale_start}) must be <= "
            f"rescale_end ({y.rescale_end})"
        )
    if y.rescale_start < y.survey_start or y.rescale_end > y.intensity_change:
        raise ValueError(
            f"years.rescale window [{y.rescale_start}, {y.rescale_end}) must lie "
            f"within [{y.survey_start}, {y.intensity_change})"
        )
    if y.assess_end is not None and y.assess_end < y.assess:
        raise ValueError(
            f"years.assess_end ({y.assess_end}) must be >= assess ({y.assess})"
        )

    c = config.conversion
    if c.omega <= 0:
        raise ValueError("conversion.omega must be positive")
    if not (0.0 < c.female <= 1.0):
        raise ValueError(
            f"conversion.female must be in (0, 1], got {c.female}"
        )
    if c.theta is not None and c.theta <= 0:
        raise ValueError(f"conversion.theta must be positive, got {c.theta}")
    if c.ft2m <= 0:
        raise ValueError("conversion.ft2m must be positive")

    if config.surface.beta <= 0:
        raise ValueError("surface.beta must be positive")
    if config.surface.alpha < 0:
        raise ValueError("surface.alpha must be non-negative")

    m = config.macrocystis
    for name in ('beta', 'gamma', 'delta', 'epsilon', 'transect_swath'):
        if getattr(m, name) <= 0:
            raise ValueError(f"macrocystis.{name} must be positive")

    u = config.understory
    for name in ('varsigma', 'xi', 'upsilon', 'varphi'):
        if getattr(u, name) <= 0:
            raise ValueError(f"understory.{name} must be positive")
    for alg, coef in u.algae_coefs.items():
        if coef <= 0:
            raise ValueError(
                f"understory.algae_coefs['{alg}'] must be positive, got {coef}"
            )
    if u.substrate_code in u.algae_coefs:
        raise ValueError(
            f"understory.substrate_code '{u.substrate_code}' clashes with an "
            f"algae type"
        )

    s = config.sok
    if not (0.0 <= s.nu < 1.0):
        raise ValueError(f"sok.nu must be in [0, 1), got {s.nu}")
    if s.upsilon <= 0 or s.egg_weight <= 0:
        raise ValueError("sok.upsilon and sok.egg_weight must be positive")


def load_config(
    base_path: Union[str, Path],
    override_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> CalculationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → override file → overrides dict.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        override_path: Optional override YAML (e.g. a historical recalculation).
        overrides: Optional dict of parameter overrides.

    Returns:
        Validated CalculationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if override_path is not None:
        override_path = Path(override_path)
        if override_path.exists():
            with open(override_path) as f:
                override = yaml.safe_load(f) or {}
            deep_merge(config_dict, override)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> CalculationConfig:
    """Return a CalculationConfig with all default values."""
    config = CalculationConfig()
    validate_config(config)
    return config
