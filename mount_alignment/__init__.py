"""
Mount Alignment Geometry

Numeric helpers for telescope mount alignment, independent of any GUI or
device driver.

Modules:
    sphere: Unit-sphere conversions and the three-sample polar axis solver
    rotator: Rotator circular angle <-> camera position angle conversions
    controller: Rotator calibration state and pier-side notifications
    config: YAML option store for the persisted calibration
    horizontal: Altitude/azimuth display of a solved axis and polar error
"""

__version__ = "1.0.0"
__author__ = "Mount Alignment Team"

from .sphere import (
    AnglePair,
    to_cartesian,
    to_angle_pair,
    plane_normal,
    find_rotation_axis,
    vector_length,
    is_undetermined,
    other_pole
)
from .rotator import (
    AngleConventionConverter,
    PierSide,
    range360,
    range_pa,
    pier_flip,
    shortest_angular_difference
)
from .config import OptionStore, ConfigError, load_config
from .controller import RotatorController

__all__ = [
    'AnglePair',
    'to_cartesian',
    'to_angle_pair',
    'plane_normal',
    'find_rotation_axis',
    'vector_length',
    'is_undetermined',
    'other_pole',
    'AngleConventionConverter',
    'PierSide',
    'range360',
    'range_pa',
    'pier_flip',
    'shortest_angular_difference',
    'OptionStore',
    'ConfigError',
    'load_config',
    'RotatorController'
]
