"""
Configuration management for the PCA engine.

This module provides functionality for managing configuration,
including loading from environment variables, files and default values.
"""

import os
import json
import math
import logging
import threading
from copy import deepcopy
from typing import Dict, Optional, Any

import yaml

from pcaengine.errors import InvalidInputError, ThresholdUnreachableError
from pcaengine.math.dispersion import DISPERSION_KINDS
from pcaengine.math.eigen import EIGEN_METHODS, SIGN_CONVENTIONS

# Set up logging
logger = logging.getLogger(__name__)

LOG_LEVELS = ('debug', 'info', 'warn', 'warning', 'error', 'critical')


def to_float(value: Any) -> Optional[float]:
    """
    Convert a value to a float.

    Args:
        value: Value to convert

    Returns:
        Float value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_bool(value: Any) -> Optional[bool]:
    """
    Convert a value to a boolean.

    Args:
        value: Value to convert

    Returns:
        Boolean value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ('true', 'yes', 'y', '1', 't'):
            return True
        if value in ('false', 'no', 'n', '0', 'f'):
            return False

    return None


def to_optional_str(value: Any) -> Optional[str]:
    """Map empty strings and 'none' to None, leave other strings as they are."""
    if value is None:
        return None
    value = str(value).strip()
    if value == '' or value.lower() == 'none':
        return None
    return value


def load_config_file(filepath: str) -> Dict[str, Any]:
    """
    Load a configuration mapping from a JSON or YAML file.

    Args:
        filepath: Path to configuration file

    Returns:
        Configuration dictionary
    """
    if filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            return json.load(f)
    elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'r') as f:
            return yaml.safe_load(f) or {}
    else:
        raise ValueError(f"Unsupported configuration file format: {filepath}")


class Config:
    """
    Configuration for a PCA run.

    Values are resolved in order: defaults, environment variables,
    then explicit overrides. Keys use dashes, nested by section.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides
        """
        self._lock = threading.RLock()
        self._config = {}
        self._initialized = False

        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Load configuration from all sources.

        Args:
            overrides: Optional configuration overrides

        Raises:
            InvalidInputError: If the resulting configuration is invalid
        """
        with self._lock:
            config = self._get_defaults()
            config = self._apply_env_vars(config)

            if overrides:
                config = self._apply_overrides(config, overrides)

            self._validate(config)

            self._config = config
            self._initialized = True

            logger.debug("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        """
        Get default configuration values.

        Returns:
            Default configuration
        """
        return {
            'pca': {
                'standardize': True,
                'impute-missing': False,
                'dispersion-kind': 'correlation',
                'cve-threshold': 0.75,
                'eigen-method': 'eigh',
                'sign-convention': None,
            },

            'logging': {
                'level': 'warning'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Unparseable values fall back to the current setting.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        config = deepcopy(config)
        pca = config['pca']

        standardize = to_bool(os.environ.get('PCA_STANDARDIZE'))
        if standardize is not None:
            pca['standardize'] = standardize

        impute = to_bool(os.environ.get('PCA_IMPUTE_MISSING'))
        if impute is not None:
            pca['impute-missing'] = impute

        threshold = to_float(os.environ.get('PCA_CVE_THRESHOLD'))
        if threshold is not None:
            pca['cve-threshold'] = threshold

        pca['dispersion-kind'] = os.environ.get('PCA_DISPERSION_KIND', pca['dispersion-kind']).lower()
        pca['eigen-method'] = os.environ.get('PCA_EIGEN_METHOD', pca['eigen-method']).lower()

        if 'PCA_SIGN_CONVENTION' in os.environ:
            pca['sign-convention'] = to_optional_str(os.environ['PCA_SIGN_CONVENTION'])

        level = os.environ.get('LOG_LEVEL', '').lower()
        if level in LOG_LEVELS:
            config['logging']['level'] = level

        return config

    def _apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply configuration overrides.

        Args:
            config: Current configuration
            overrides: Configuration overrides

        Returns:
            Updated configuration
        """
        config = deepcopy(config)

        def deep_update(d, u):
            for k, v in u.items():
                if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        return deep_update(config, deepcopy(overrides))

    def _validate(self, config: Dict[str, Any]) -> None:
        """
        Check option types and ranges.

        Args:
            config: Configuration to check

        Raises:
            InvalidInputError: On the first invalid value
        """
        pca = config['pca']

        for key in ('standardize', 'impute-missing'):
            if not isinstance(pca[key], bool):
                raise InvalidInputError(f"pca.{key} must be a boolean, got {pca[key]!r}")

        if pca['dispersion-kind'] not in DISPERSION_KINDS:
            raise InvalidInputError(
                f"pca.dispersion-kind must be one of {DISPERSION_KINDS}, got {pca['dispersion-kind']!r}"
            )

        threshold = pca['cve-threshold']
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidInputError(f"pca.cve-threshold must be a number, got {threshold!r}")
        if not math.isfinite(threshold) or threshold <= 0:
            raise InvalidInputError(f"pca.cve-threshold must be in (0, 1], got {threshold!r}")
        if threshold > 1:
            raise ThresholdUnreachableError(f"pca.cve-threshold {threshold} exceeds 1.0")

        if pca['eigen-method'] not in EIGEN_METHODS:
            raise InvalidInputError(
                f"pca.eigen-method must be one of {EIGEN_METHODS}, got {pca['eigen-method']!r}"
            )

        if pca['sign-convention'] not in SIGN_CONVENTIONS:
            raise InvalidInputError(
                f"pca.sign-convention must be one of {SIGN_CONVENTIONS}, got {pca['sign-convention']!r}"
            )

        if config['logging']['level'] not in LOG_LEVELS:
            raise InvalidInputError(
                f"logging.level must be one of {LOG_LEVELS}, got {config['logging']['level']!r}"
            )

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        if not self._initialized:
            self.load_config()

        value = self._config

        for component in path.split('.'):
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value.

        The change is validated; an invalid value leaves the configuration
        unchanged.

        Args:
            path: Configuration path (dot-separated)
            value: Configuration value
        """
        with self._lock:
            if not self._initialized:
                self.load_config()

            candidate = deepcopy(self._config)
            config = candidate

            components = path.split('.')
            for component in components[:-1]:
                if component not in config:
                    config[component] = {}
                config = config[component]

            config[components[-1]] = value

            self._validate(candidate)
            self._config = candidate

    def pca_options(self) -> Dict[str, Any]:
        """
        Keyword arguments for the pipeline stages.

        Returns:
            Dictionary keyed by the pipeline's parameter names
        """
        pca = self.get('pca')
        return {
            'standardize': pca['standardize'],
            'impute_missing': pca['impute-missing'],
            'dispersion_kind': pca['dispersion-kind'],
            'cve_threshold': float(pca['cve-threshold']),
            'eigen_method': pca['eigen-method'],
            'sign_convention': pca['sign-convention'],
        }

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Configuration dictionary
        """
        if not self._initialized:
            self.load_config()

        return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Save configuration to a file.

        Args:
            filepath: Path to save configuration (.json, .yaml or .yml)
        """
        if not self._initialized:
            self.load_config()

        if filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

    def load_from_file(self, filepath: str) -> None:
        """
        Load configuration from a file.

        Args:
            filepath: Path to load configuration from
        """
        self.load_config(load_config_file(filepath))


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance so the next call rebuilds it."""
        with cls._lock:
            cls._instance = None
