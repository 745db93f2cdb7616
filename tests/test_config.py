"""
Tests for configuration management.
"""

import json

import pytest
import yaml

from pcaengine.components.config import (
    Config, ConfigManager, to_bool, to_float, to_optional_str, load_config_file
)
from pcaengine.errors import InvalidInputError, ThresholdUnreachableError


class TestConverters:
    """Tests for the value conversion helpers."""

    @pytest.mark.parametrize("value,expected", [
        ('true', True), ('YES', True), ('1', True), (' f ', False),
        ('no', False), (0, False), (True, True), ('maybe', None), (None, None),
    ])
    def test_to_bool(self, value, expected):
        """Test converting strings and numbers to booleans."""
        assert to_bool(value) is expected

    def test_to_float(self):
        """Test converting values to floats."""
        assert to_float('0.8') == 0.8
        assert to_float('abc') is None
        assert to_float(None) is None

    def test_to_optional_str(self):
        """Test mapping empty and 'none' strings to None."""
        assert to_optional_str('none') is None
        assert to_optional_str('') is None
        assert to_optional_str('max_abs_positive') == 'max_abs_positive'


class TestConfig:
    """Tests for the Config class."""

    def test_defaults(self):
        """Test the default configuration values."""
        config = Config()

        assert config.get('pca.standardize') is True
        assert config.get('pca.impute-missing') is False
        assert config.get('pca.dispersion-kind') == 'correlation'
        assert config.get('pca.cve-threshold') == 0.75
        assert config.get('pca.eigen-method') == 'eigh'
        assert config.get('pca.sign-convention') is None

    def test_missing_path_default(self):
        """Test that an unknown path returns the default."""
        assert Config().get('pca.nope', 'fallback') == 'fallback'

    def test_overrides_deep_merge(self):
        """Test that overrides merge into nested sections."""
        config = Config({'pca': {'cve-threshold': 0.9}})

        assert config.get('pca.cve-threshold') == 0.9
        assert config.get('pca.standardize') is True

    def test_environment_variables(self, monkeypatch):
        """Test reading options from environment variables."""
        monkeypatch.setenv('PCA_STANDARDIZE', 'false')
        monkeypatch.setenv('PCA_IMPUTE_MISSING', 'yes')
        monkeypatch.setenv('PCA_DISPERSION_KIND', 'COVARIANCE')
        monkeypatch.setenv('PCA_CVE_THRESHOLD', '0.6')
        monkeypatch.setenv('PCA_EIGEN_METHOD', 'power')
        monkeypatch.setenv('PCA_SIGN_CONVENTION', 'max_abs_positive')
        monkeypatch.setenv('LOG_LEVEL', 'DEBUG')

        options = Config().pca_options()

        assert options == {
            'standardize': False,
            'impute_missing': True,
            'dispersion_kind': 'covariance',
            'cve_threshold': 0.6,
            'eigen_method': 'power',
            'sign_convention': 'max_abs_positive',
        }
        assert Config().get('logging.level') == 'debug'

    def test_unparseable_environment_ignored(self, monkeypatch):
        """Test that unparseable environment values keep the defaults."""
        monkeypatch.setenv('PCA_STANDARDIZE', 'sometimes')
        monkeypatch.setenv('PCA_CVE_THRESHOLD', 'high')
        monkeypatch.setenv('LOG_LEVEL', 'LOUD')
        config = Config()

        assert config.get('pca.standardize') is True
        assert config.get('pca.cve-threshold') == 0.75
        assert config.get('logging.level') == 'warning'

    def test_overrides_beat_environment(self, monkeypatch):
        """Test that explicit overrides win over the environment."""
        monkeypatch.setenv('PCA_CVE_THRESHOLD', '0.6')
        assert Config({'pca': {'cve-threshold': 0.95}}).get('pca.cve-threshold') == 0.95

    @pytest.mark.parametrize("overrides", [
        {'pca': {'standardize': 'yes'}},
        {'pca': {'dispersion-kind': 'spearman'}},
        {'pca': {'cve-threshold': 0}},
        {'pca': {'cve-threshold': 'high'}},
        {'pca': {'cve-threshold': float('nan')}},
        {'pca': {'eigen-method': 'qr'}},
        {'pca': {'sign-convention': 'positive'}},
        {'logging': {'level': 'verbose'}},
    ])
    def test_invalid_values(self, overrides):
        """Test rejecting invalid option values."""
        with pytest.raises(InvalidInputError):
            Config(overrides)

    def test_nan_threshold_from_environment(self, monkeypatch):
        """Test that PCA_CVE_THRESHOLD=nan is rejected as invalid input."""
        monkeypatch.setenv('PCA_CVE_THRESHOLD', 'nan')
        with pytest.raises(InvalidInputError, match="cve-threshold"):
            Config()

    def test_threshold_above_one(self):
        """Test that a threshold above one is unreachable."""
        with pytest.raises(ThresholdUnreachableError):
            Config({'pca': {'cve-threshold': 1.5}})

    def test_set_validates(self):
        """Test that set validates and leaves the config unchanged on error."""
        config = Config()
        config.set('pca.cve-threshold', 0.8)
        assert config.get('pca.cve-threshold') == 0.8

        with pytest.raises(InvalidInputError):
            config.set('pca.dispersion-kind', 'bogus')
        assert config.get('pca.dispersion-kind') == 'correlation'

    def test_to_dict_is_copy(self):
        """Test that to_dict returns an independent copy."""
        config = Config()
        d = config.to_dict()
        d['pca']['standardize'] = False
        assert config.get('pca.standardize') is True

    def test_save_and_load_json(self, tmp_path):
        """Test saving and loading a JSON config file."""
        path = str(tmp_path / "config.json")
        Config({'pca': {'cve-threshold': 0.85}}).save_to_file(path)

        with open(path) as f:
            assert json.load(f)['pca']['cve-threshold'] == 0.85

        config = Config()
        config.load_from_file(path)
        assert config.get('pca.cve-threshold') == 0.85

    def test_save_and_load_yaml(self, tmp_path):
        """Test saving and loading a YAML config file."""
        path = str(tmp_path / "config.yaml")
        Config({'pca': {'dispersion-kind': 'covariance'}}).save_to_file(path)

        with open(path) as f:
            assert yaml.safe_load(f)['pca']['dispersion-kind'] == 'covariance'

        config = Config()
        config.load_from_file(path)
        assert config.get('pca.dispersion-kind') == 'covariance'

    def test_unsupported_format(self, tmp_path):
        """Test rejecting an unknown config file extension."""
        with pytest.raises(ValueError):
            Config().save_to_file(str(tmp_path / "config.ini"))
        with pytest.raises(ValueError):
            load_config_file(str(tmp_path / "config.ini"))


class TestConfigManager:
    """Tests for the shared configuration instance."""

    def test_singleton(self):
        """Test that the manager returns one shared instance."""
        assert ConfigManager.get_config() is ConfigManager.get_config()

    def test_overrides_reload(self):
        """Test that new overrides reload the shared instance."""
        config = ConfigManager.get_config()
        ConfigManager.get_config({'pca': {'cve-threshold': 0.6}})
        assert config.get('pca.cve-threshold') == 0.6

    def test_reset(self):
        """Test that reset drops the shared instance."""
        first = ConfigManager.get_config()
        ConfigManager.reset()
        assert ConfigManager.get_config() is not first
