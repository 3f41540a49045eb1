#!/usr/bin/env python3
"""
mount_alignment/sphere.py - Polar Axis Geometry

Finds a mount's right-ascension axis of rotation from three sky positions
sampled at a fixed declination and three different hour angles.

Each sample is converted to a point on the unit sphere. The three points
define a plane, and that plane cuts the sphere in a circle: the circle traced
by the mount while it turns about its RA axis. The normal to the plane,
pointing out from the centre of the sphere, is the axis of rotation.

Frame conventions (all angles in degrees):
- secondary = 0 is the equator, secondary = +90 is the pole about which the
  axis spins
- primary is the spin angle, positive counter-clockwise looking at the pole
  from the centre of the sphere, primary = 0 pointing "up"
- z points at the pole, x points "up" (primary = 0), y points left when
  looking at the pole (primary = 90)

Usage:
    from mount_alignment.sphere import AnglePair, find_rotation_axis, is_undetermined, to_angle_pair

    axis = find_rotation_axis(AnglePair(0, 40), AnglePair(60, 40), AnglePair(120, 40))
    if not is_undetermined(axis):
        pole = to_angle_pair(axis)
"""

import numpy as np
import logging
from typing import Tuple, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Below this cross-product length the three samples are close to collinear and
# the axis direction is dominated by rounding noise.
NEAR_DEGENERATE_LENGTH = 5e-8

@dataclass(frozen=True)
class AnglePair:
    """Direction in the sampling frame: primary (hour angle) and secondary (declination), degrees."""
    primary: float
    secondary: float

    @classmethod
    def from_radians(cls, primary: float, secondary: float) -> 'AnglePair':
        return cls(float(np.degrees(primary)), float(np.degrees(secondary)))

    @property
    def radians(self) -> Tuple[float, float]:
        return float(np.radians(self.primary)), float(np.radians(self.secondary))


def _check_finite(name: str, *values: float) -> None:
    if not np.all(np.isfinite(np.asarray(values, dtype=float))):
        raise ValueError(f"{name} must be finite, got {values}")


def _as_vector(v: Union[np.ndarray, Tuple[float, float, float]], name: str) -> np.ndarray:
    v = np.asarray(v, dtype=float)
    if v.shape != (3,):
        raise ValueError(f"{name} must be a 3-element vector, got shape {v.shape}")
    _check_finite(name, *v)
    return v


def to_cartesian(primary: float, secondary: float) -> np.ndarray:
    """
    Convert a primary/secondary angle pair to a point on the unit sphere.

    Parameters
    ----------
    primary : float
        Hour angle analog in degrees
    secondary : float
        Declination analog in degrees

    Returns
    -------
    np.ndarray
        Unit vector [x, y, z], float64

    Notes
    -----
    x = cos(secondary) * cos(primary)
    y = cos(secondary) * sin(primary)
    z = sin(secondary)

    Everything is computed in double precision. Single-precision products
    would change the last bits of very small z values.
    """
    _check_finite("angle pair", primary, secondary)
    p = np.radians(primary)
    s = np.radians(secondary)
    return np.array([
        np.cos(s) * np.cos(p),
        np.cos(s) * np.sin(p),
        np.sin(s),
    ])


def to_angle_pair(v: np.ndarray) -> AnglePair:
    """
    Convert a direction vector back to its angle pair.

    Args:
        v: Unit vector [x, y, z]

    Returns:
        AnglePair with primary = atan2(y, x) in (-180, 180] and
        secondary = asin(z) in [-90, 90]. The zero vector gives (0, 0);
        at the poles the primary angle is arbitrary.
    """
    x, y, z = _as_vector(v, "v")
    # rounding can leave |z| a hair above 1 for a normalized vector
    z = float(np.clip(z, -1.0, 1.0))
    return AnglePair(float(np.degrees(np.arctan2(y, x))), float(np.degrees(np.arcsin(z))))


def vector_length(v: np.ndarray) -> float:
    """Euclidean length of a 3-vector."""
    return float(np.linalg.norm(_as_vector(v, "v")))


def is_undetermined(axis: np.ndarray, tolerance: float = 0.0) -> bool:
    """True when an axis returned by plane_normal/find_rotation_axis carries no direction."""
    return vector_length(axis) <= tolerance


def plane_normal(v1: np.ndarray, v2: np.ndarray, v3: np.ndarray) -> np.ndarray:
    """
    Unit normal to the plane through three points.

    Parameters
    ----------
    v1, v2, v3 : np.ndarray
        Points [x, y, z], normally on the unit sphere

    Returns
    -------
    np.ndarray
        Unit normal of (v2 - v1) x (v3 - v2). When the points are collinear
        or two of them coincide the cross product vanishes and the zero
        vector is returned: the axis is undetermined and the caller has to
        check for it (see is_undetermined). No exception is raised.

    Notes
    -----
    The direction follows the traversal order of the points: reversing the
    order, plane_normal(v3, v2, v1), negates the result. The sign is left
    exactly as computed.

    A cross product shorter than NEAR_DEGENERATE_LENGTH is still normalized,
    but a warning is logged since the direction is unreliable.
    """
    v1 = _as_vector(v1, "v1")
    v2 = _as_vector(v2, "v2")
    v3 = _as_vector(v3, "v3")

    d1 = v2 - v1
    d2 = v3 - v2
    cross = np.cross(d1, d2)

    length_sq = float(np.dot(cross, cross))
    if length_sq == 0.0:
        logger.debug("Degenerate sample points, axis undetermined")
        return np.zeros(3)

    length = np.sqrt(length_sq)
    if length < NEAR_DEGENERATE_LENGTH:
        logger.warning(f"Nearly collinear sample points (|n|={length:.3e}), axis direction unreliable")

    normal = cross / length
    logger.debug(f"Plane normal {normal} from |n|={length:.6e}")
    return normal


def find_rotation_axis(p1: AnglePair, p2: AnglePair, p3: AnglePair) -> np.ndarray:
    """
    Solve the mount's RA rotation axis from three samples.

    The samples are taken at one fixed declination and three different hour
    angles. They lie on a circle of the unit sphere whose plane normal is the
    mechanical rotation axis.

    Args:
        p1, p2, p3: Sampled positions

    Returns:
        Unit axis vector, or the zero vector if the samples do not define a
        plane. The axis points to the north or the south pole depending on
        the rotational sense of the samples; use other_pole() on the angle
        pair if a particular hemisphere is wanted.
    """
    v1 = to_cartesian(p1.primary, p1.secondary)
    v2 = to_cartesian(p2.primary, p2.secondary)
    v3 = to_cartesian(p3.primary, p3.secondary)

    axis = plane_normal(v1, v2, v3)
    if not is_undetermined(axis):
        logger.info(f"Rotation axis {to_angle_pair(axis)}")
    return axis


def other_pole(pair: AnglePair) -> AnglePair:
    """The opposite end of an axis: secondary negated, primary turned by 180 degrees."""
    _check_finite("angle pair", pair.primary, pair.secondary)
    primary = pair.primary + 180.0
    # fold into (-180, 180] to match to_angle_pair
    primary = primary - 360.0 * np.ceil((primary - 180.0) / 360.0)
    return AnglePair(float(primary), -pair.secondary)
