#!/usr/bin/env python3
"""
mount_alignment/config.py - Persisted Options

YAML-backed option store. Holds the calibrated rotator PA offset and the
polar alignment defaults used by run_polar_alignment.py.

Usage:
    from mount_alignment.config import OptionStore

    store = OptionStore("mount_alignment/defaults/mount_alignment.yaml")
    offset = store.get_pa_offset()
    store.set_pa_offset(12.5)   # written to disk immediately
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "mount_alignment.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    'rotator': {'pa_offset': 0.0},
    'polar_alignment': {
        'latitude': None
    }
}


class ConfigError(ValueError):
    """Raised when a configuration file cannot be parsed."""


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration merged over DEFAULT_CONFIG.

    Parameters
    ----------
    config_path : str or Path, optional
        Configuration file; DEFAULT_CONFIG_PATH when omitted

    Returns
    -------
    Dict[str, Any]
        Configuration dictionary

    Raises
    ------
    ConfigError
        If the file is not valid YAML, or its top level or one of the
        known sections is not a mapping
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a mapping, got {type(data).__name__}")

    for section in DEFAULT_CONFIG:
        if section not in data:
            continue
        if data[section] is None:
            # an empty section keeps its defaults
            del data[section]
        elif not isinstance(data[section], dict):
            raise ConfigError(
                f"Config {config_path}: section '{section}' must be a mapping, got {type(data[section]).__name__}"
            )

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(DEFAULT_CONFIG, data)


class OptionStore:
    """
    get/set access to the persisted rotator calibration.

    With no path the store lives in memory only, which is what tests and
    one-off scripts want.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self.config = self.load()

    def load(self) -> Dict[str, Any]:
        if self.path is None:
            return copy.deepcopy(DEFAULT_CONFIG)
        return load_config(self.path)

    def save(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            yaml.safe_dump(self.config, f, default_flow_style=False, sort_keys=False)
        logger.debug(f"Saved configuration to {self.path}")

    def get_pa_offset(self) -> float:
        return float(self.config['rotator'].get('pa_offset') or 0.0)

    def set_pa_offset(self, value: float):
        self.config.setdefault('rotator', {})['pa_offset'] = float(value)
        self.save()

    def get_latitude(self) -> Optional[float]:
        latitude = self.config['polar_alignment'].get('latitude')
        return None if latitude is None else float(latitude)
