#!/usr/bin/env python3
"""
mount_alignment/horizontal.py - Horizontal Display of the Mount Axis

Turns a solved rotation axis, expressed in the hour angle / declination
sampling frame, into altitude and azimuth for a site latitude, and reports
how far that axis is from the celestial pole.

Azimuth is measured from north through east, 0 <= az < 360.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Union

import numpy as np
from astropy import units as u
from astropy.coordinates import Angle

from .rotator import range360, range_pa
from .sphere import is_undetermined, to_angle_pair

logger = logging.getLogger(__name__)

ARCSEC_PER_DEG = 3600.0


def _latitude_deg(latitude: Union[float, u.Quantity]) -> float:
    """Latitude in degrees from a float (degrees) or an astropy angle quantity."""
    latitude = u.Quantity(latitude, u.deg).to_value(u.deg)
    if not np.isfinite(latitude) or abs(latitude) > 90.0:
        raise ValueError(f"latitude must be within [-90, 90] deg, got {latitude}")
    return float(latitude)


@dataclass
class HorizontalAxis:
    """Axis direction in the horizontal frame (degrees)."""
    altitude: float
    azimuth: float


@dataclass
class PolarError:
    """Offset of the mount axis from the celestial pole (degrees)."""
    altitude_error: float
    azimuth_error: float
    total_error: float
    axis: HorizontalAxis

    def to_arcsec(self) -> Dict[str, float]:
        return {
            'altitude_error': self.altitude_error * ARCSEC_PER_DEG,
            'azimuth_error': self.azimuth_error * ARCSEC_PER_DEG,
            'total_error': self.total_error * ARCSEC_PER_DEG
        }

    def describe(self) -> str:
        """Sexagesimal summary, e.g. 'alt +0:12:03.0  az -0:05:10.0  total 0:13:07.6'."""
        def dms(value: float, sign: bool = True) -> str:
            return Angle(value, u.deg).to_string(unit=u.deg, sep=':', precision=1, alwayssign=sign)
        return (f"alt {dms(self.altitude_error)}  az {dms(self.azimuth_error)}  "
                f"total {dms(self.total_error, sign=False)}")


def hadec_to_altaz(
    hour_angle: float,
    declination: float,
    latitude: Union[float, u.Quantity]
) -> Tuple[float, float]:
    """
    Convert hour angle / declination to altitude / azimuth.

    Args:
        hour_angle: Hour angle in degrees, positive west
        declination: Declination in degrees
        latitude: Site latitude in degrees (or astropy Quantity)

    Returns:
        (altitude, azimuth) in degrees, azimuth from north through east
    """
    lat = np.radians(_latitude_deg(latitude))
    h = np.radians(hour_angle)
    dec = np.radians(declination)

    sin_alt = np.sin(dec) * np.sin(lat) + np.cos(dec) * np.cos(lat) * np.cos(h)
    altitude = np.degrees(np.arcsin(np.clip(sin_alt, -1.0, 1.0)))
    azimuth = np.degrees(np.arctan2(
        -np.cos(dec) * np.sin(h),
        np.sin(dec) * np.cos(lat) - np.cos(dec) * np.sin(lat) * np.cos(h)
    ))
    return float(altitude), range360(azimuth)


def axis_to_horizontal(axis: np.ndarray, latitude: Union[float, u.Quantity]) -> HorizontalAxis:
    """
    Horizontal direction of a solved axis vector.

    Raises
    ------
    ValueError
        If the axis is the zero vector returned for degenerate samples
    """
    if is_undetermined(axis):
        raise ValueError("Rotation axis is undetermined (degenerate samples)")
    pair = to_angle_pair(axis)
    altitude, azimuth = hadec_to_altaz(pair.primary, pair.secondary, latitude)
    logger.debug(f"Axis {pair} -> alt={altitude:.4f}, az={azimuth:.4f}")
    return HorizontalAxis(altitude=altitude, azimuth=azimuth)


def polar_alignment_error(axis: np.ndarray, latitude: Union[float, u.Quantity]) -> PolarError:
    """
    Polar alignment error of a solved axis.

    The axis is a line, so the end in the site's hemisphere is compared with
    the visible pole: at altitude |latitude|, azimuth 0 in the north and 180
    in the south.

    Returns
    -------
    PolarError
        altitude_error > 0 means the axis points above the pole,
        azimuth_error > 0 means it is clockwise of the pole seen from
        above (east of it for a northern site)
    """
    lat = _latitude_deg(latitude)
    axis = np.asarray(axis, dtype=float)
    if is_undetermined(axis):
        raise ValueError("Rotation axis is undetermined (degenerate samples)")

    hemisphere = 1.0 if lat >= 0 else -1.0
    if axis[2] * hemisphere < 0:
        logger.debug("Axis points to the far pole, using its other end")
        axis = -axis

    horizontal = axis_to_horizontal(axis, lat)
    pole_azimuth = 0.0 if hemisphere > 0 else 180.0

    altitude_error = horizontal.altitude - abs(lat)
    azimuth_error = range_pa(horizontal.azimuth - pole_azimuth)
    # separation from the pole in the sampling frame
    total_error = float(np.degrees(np.arctan2(np.hypot(axis[0], axis[1]), abs(axis[2]))))

    error = PolarError(
        altitude_error=altitude_error,
        azimuth_error=azimuth_error,
        total_error=total_error,
        axis=horizontal
    )
    logger.info(f"Polar alignment error: {error.describe()}")
    return error
