"""Tests for spawn_index.config — configuration loading and validation."""

import pytest
import yaml

from spawn_index.config import (
    CalculationConfig,
    ConversionSection,
    MacrocystisSection,
    SokSection,
    SurfaceSection,
    UnderstorySection,
    YearsSection,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_era_override_keeps_other_years(self):
        base = {'years': {'survey_start': 1951, 'layers_start': 1979}}
        merged = deep_merge(base, {'years': {'layers_start': 1980}})
        assert merged == {'years': {'survey_start': 1951, 'layers_start': 1980}}

    def test_algae_coefficient_added(self):
        base = {'understory': {'xi': 600.567, 'algae_coefs': {'KS': 0.9119}}}
        merged = deep_merge(base, {'understory': {'algae_coefs': {'ZOS': 1.05}}})
        assert merged['understory']['algae_coefs'] == {'KS': 0.9119, 'ZOS': 1.05}
        assert merged['understory']['xi'] == 600.567

    def test_new_section_added(self):
        merged = deep_merge({'surface': {'alpha': 14.698}}, {'sok': {'nu': 0.1}})
        assert set(merged) == {'surface', 'sok'}

    def test_theta_scalar_replaces(self):
        base = {'conversion': {'theta': None, 'female': 0.5}}
        merged = deep_merge(base, {'conversion': {'theta': 9.5e7}})
        assert merged['conversion'] == {'theta': 9.5e7, 'female': 0.5}

    def test_merges_in_place(self):
        base = {'macrocystis': {'transect_swath': 2.0}}
        assert deep_merge(base, {}) is base


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        config = default_config()
        assert isinstance(config, CalculationConfig)

    def test_era_boundaries(self):
        y = default_config().years
        assert y.survey_start == 1951
        assert y.intensity_change == 1969
        assert y.layers_start == 1979
        assert (y.rescale_start, y.rescale_end) == (1951, 1969)

    def test_theta_from_omega_and_female(self):
        config = default_config()
        assert config.theta == pytest.approx(1.0e8)

    def test_theta_override(self):
        config = CalculationConfig(conversion=ConversionSection(theta=5.0e7))
        assert config.theta == 5.0e7


# ── YAML loading tests ───────────────────────────────────────────────

class TestLoadConfig:
    def test_load_from_yaml(self, tmp_path):
        """Load a minimal YAML config."""
        yaml_content = {
            'years': {'assess': 1988},
            'surface': {'beta': 200.0},
        }
        config_path = tmp_path / "test.yaml"
        with open(config_path, 'w') as f:
            yaml.dump(yaml_content, f)

        config = load_config(config_path)
        assert config.years.assess == 1988
        assert config.surface.beta == 200.0
        # Unspecified fields and sections get defaults
        assert config.surface.alpha == 14.698
        assert config.macrocystis.gamma == 0.673

    def test_load_with_override_file(self, tmp_path):
        base = {'conversion': {'omega': 200000.0, 'female': 0.5}}
        override = {'conversion': {'female': 0.4}}
        base_path = tmp_path / "base.yaml"
        over_path = tmp_path / "override.yaml"
        with open(base_path, 'w') as f:
            yaml.dump(base, f)
        with open(over_path, 'w') as f:
            yaml.dump(override, f)

        config = load_config(base_path, override_path=over_path)
        assert config.conversion.female == 0.4
        assert config.conversion.omega == 200000.0  # unchanged
        assert config.theta == pytest.approx(8.0e7)

    def test_dict_overrides_applied_last(self, tmp_path):
        base_path = tmp_path / "base.yaml"
        with open(base_path, 'w') as f:
            yaml.dump({'years': {'assess': 1988}}, f)

        config = load_config(base_path, overrides={'years': {'assess': 1951}})
        assert config.years.assess == 1951

    def test_unknown_keys_ignored(self, tmp_path):
        base_path = tmp_path / "base.yaml"
        with open(base_path, 'w') as f:
            yaml.dump({'surface': {'gamma': 3.0}, 'plotting': {'dpi': 300}}, f)
        config = load_config(base_path)
        assert not hasattr(config.surface, 'gamma')

    def test_empty_file(self, tmp_path):
        base_path = tmp_path / "empty.yaml"
        base_path.write_text("")
        config = load_config(base_path)
        assert config.surface.beta == 212.218

    def test_algae_coefficients_from_yaml(self, tmp_path):
        base_path = tmp_path / "base.yaml"
        with open(base_path, 'w') as f:
            yaml.dump({'understory': {'algae_coefs': {'EG': 0.8}}}, f)
        config = load_config(base_path)
        assert config.understory.algae_coefs == {'EG': 0.8}

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_invalid_values_rejected(self, tmp_path):
        base_path = tmp_path / "base.yaml"
        with open(base_path, 'w') as f:
            yaml.dump({'conversion': {'theta': -1.0}}, f)
        with pytest.raises(ValueError, match="theta"):
            load_config(base_path)


# ── Validation tests ──────────────────────────────────────────────────

class TestValidation:
    def test_era_ordering(self):
        config = default_config()
        config.years.layers_start = 1960
        with pytest.raises(ValueError, match="layers_start"):
            validate_config(config)

    def test_rescale_window_order(self):
        config = default_config()
        config.years.rescale_start = 1965
        config.years.rescale_end = 1960
        with pytest.raises(ValueError, match="rescale_start"):
            validate_config(config)

    def test_rescale_window_inside_five_category_era(self):
        config = default_config()
        config.years.rescale_end = 1975
        with pytest.raises(ValueError, match="rescale window"):
            validate_config(config)

    def test_narrow_rescale_window_valid(self):
        config = default_config()
        config.years.rescale_end = 1960
        validate_config(config)  # should not raise

    def test_assess_end_before_assess(self):
        config = default_config()
        config.years.assess_end = 1900
        with pytest.raises(ValueError, match="assess_end"):
            validate_config(config)

    def test_female_proportion(self):
        config = default_config()
        config.conversion.female = 1.5
        with pytest.raises(ValueError, match="female"):
            validate_config(config)

    def test_non_positive_algae_coefficient(self):
        config = default_config()
        config.understory.algae_coefs = {'GG': 0.0}
        with pytest.raises(ValueError, match="algae_coefs"):
            validate_config(config)

    def test_substrate_code_clash(self):
        config = default_config()
        config.understory.substrate_code = 'GG'
        with pytest.raises(ValueError, match="substrate_code"):
            validate_config(config)

    def test_sok_nu_range(self):
        config = default_config()
        config.sok.nu = 1.0
        with pytest.raises(ValueError, match="sok.nu"):
            validate_config(config)

    def test_macrocystis_exponent_positive(self):
        config = default_config()
        config.macrocystis.delta = 0.0
        with pytest.raises(ValueError, match="macrocystis.delta"):
            validate_config(config)


# ── Section dataclass tests ───────────────────────────────────────────

class TestSections:
    def test_surface_defaults(self):
        s = SurfaceSection()
        assert s.alpha == 14.698
        assert s.beta == 212.218

    def test_macrocystis_defaults(self):
        m = MacrocystisSection()
        assert (m.beta, m.gamma, m.delta, m.epsilon) == (0.073, 0.673, 0.932, 0.703)
        assert m.transect_swath == 2.0

    def test_understory_defaults_independent(self):
        """Each section gets its own algae coefficient dict."""
        a = UnderstorySection()
        b = UnderstorySection()
        a.algae_coefs['XX'] = 1.0
        assert 'XX' not in b.algae_coefs

    def test_sok_defaults(self):
        s = SokSection()
        assert (s.nu, s.upsilon, s.egg_weight) == (0.12, 1.13, 2.38e-6)

    def test_years_defaults(self):
        y = YearsSection()
        assert y.assess == 1951
        assert y.assess_end is None
