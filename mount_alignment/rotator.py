#!/usr/bin/env python3
"""
mount_alignment/rotator.py - Rotator Angle Conventions

Angle calculations are based on position measurements of
- the rotator angle in "circular angle" (A) mode, 0 <> 359.99 deg CCW
- the camera offset angle and camera position angle in "position angle" (PA)
  mode, 180 <> -179.99 deg CCW

which gives:
- camera PA    = circular_to_position_angle(rotator A)
- rotator A    = position_angle_to_circular(camera PA)
- camera offset = offset_from_measurement(rotator A, camera PA)

A pier flip turns the camera by 180 degrees relative to the sky, so every
formula carries a correction gated by the mount's flip state.
"""

import logging
import threading
from enum import Enum
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class PierSide(Enum):
    """Side of the pier the optical tube rests on."""
    EAST = "east"
    WEST = "west"
    UNKNOWN = "unknown"


def _check_finite(name: str, value: float) -> float:
    value = float(value)
    if not np.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    return value


def range360(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = float(angle) % 360.0
    # -1e-20 % 360 rounds to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def range_pa(angle: float) -> float:
    """Wrap an angle into the position angle range (-180, 180]."""
    wrapped = range360(angle)
    return wrapped - 360.0 if wrapped > 180.0 else wrapped


def fold_circular(rotator_angle: float) -> float:
    """Fold a circular rotator angle into the signed range without wrapping."""
    return rotator_angle - 360.0 if rotator_angle > 180.0 else rotator_angle


def shortest_angular_difference(diff: float) -> float:
    """Unsigned shortest-path distance for a difference already in [0, 360)."""
    diff = _check_finite("diff", diff)
    return 360.0 - diff if diff > 180.0 else diff


def pier_flip(side: PierSide, calibration_side: PierSide) -> bool:
    """Whether a mount on side is flipped relative to calibration_side."""
    # an unknown side on either end cannot be told apart from a flip
    if PierSide.UNKNOWN in (side, calibration_side):
        return False
    return side != calibration_side


class AngleConventionConverter:
    """
    Converts between rotator circular angles and camera position angles.

    Holds the calibration state: the PA offset, whether the mount is currently
    flipped relative to calibration, the pier side at calibration time and
    the pier side of the most recent image. All access goes through one lock
    so a pier-side notification arriving from another thread is seen by the
    next conversion.

    The converter never changes mount_flipped on its own; its owner calls
    apply_pier_side() (or set_mount_flipped()) when the mount reports a new
    pier side. apply_pier_side() and calibrate() each run as one step under
    the lock, so a notification cannot land halfway through a calibration.
    """

    def __init__(
        self,
        offset: float = 0.0,
        mount_flipped: bool = False,
        calibration_pier_side: PierSide = PierSide.UNKNOWN,
        option_store=None,
        mount_pier_side: PierSide = PierSide.UNKNOWN
    ):
        """
        Parameters
        ----------
        offset : float
            Calibrated PA offset in degrees
        mount_flipped : bool
            Mount currently on the other pier side than at calibration
        calibration_pier_side : PierSide
            Pier side when the offset was calibrated
        option_store : object, optional
            Anything with set_pa_offset(float); recalibrations are persisted
            through it
        mount_pier_side : PierSide
            Pier side the mount reports now
        """
        self._lock = threading.RLock()
        self._offset = range_pa(_check_finite("offset", offset))
        self._mount_flipped = bool(mount_flipped)
        self._calibration_pier_side = calibration_pier_side
        self._image_pier_side = PierSide.UNKNOWN
        self._option_store = option_store
        self._mount_pier_side = mount_pier_side

    @property
    def offset(self) -> float:
        with self._lock:
            return self._offset

    @property
    def mount_flipped(self) -> bool:
        with self._lock:
            return self._mount_flipped

    @property
    def calibration_pier_side(self) -> PierSide:
        with self._lock:
            return self._calibration_pier_side

    @property
    def mount_pier_side(self) -> PierSide:
        with self._lock:
            return self._mount_pier_side

    @property
    def image_pier_side(self) -> PierSide:
        with self._lock:
            return self._image_pier_side

    def set_mount_flipped(self, flipped: bool):
        with self._lock:
            if self._mount_flipped != bool(flipped):
                logger.info(f"Mount flip state changed: flipped={bool(flipped)}")
            self._mount_flipped = bool(flipped)

    def set_calibration_pier_side(self, side: PierSide):
        with self._lock:
            self._calibration_pier_side = side

    def set_image_pier_side(self, side: PierSide):
        with self._lock:
            self._image_pier_side = side

    def circular_to_position_angle(self, rotator_angle: float, image_flipped: bool = False) -> float:
        """
        Camera position angle for a rotator angle.

        Parameters
        ----------
        rotator_angle : float
            Rotator angle in circular convention, degrees
        image_flipped : bool
            The image was taken on the other pier side than the mount is
            on now

        Returns
        -------
        float
            Position angle in (-180, 180]
        """
        rotator_angle = _check_finite("rotator_angle", rotator_angle)
        with self._lock:
            position_angle = fold_circular(rotator_angle) + self._offset
            if self._mount_flipped != bool(image_flipped):
                if position_angle > 0:
                    position_angle -= 180.0
                else:
                    position_angle += 180.0
        return range_pa(position_angle)

    def position_angle_to_circular(self, position_angle: float) -> float:
        """
        Rotator angle that puts the camera at a position angle.

        There is no image flip argument in this direction: only the mount's
        flip state is undone before the offset is removed.
        """
        position_angle = _check_finite("position_angle", position_angle)
        with self._lock:
            if self._mount_flipped:
                position_angle += 180.0
            return range360(position_angle - self._offset)

    def offset_from_measurement(self, rotator_angle: float, position_angle: float) -> float:
        """
        Calibration offset from one simultaneous rotator/camera measurement.

        Solves circular_to_position_angle for the offset.
        """
        rotator_angle = _check_finite("rotator_angle", rotator_angle)
        position_angle = _check_finite("position_angle", position_angle)
        with self._lock:
            offset = position_angle - fold_circular(rotator_angle)
            if self._mount_flipped:
                offset -= 180.0
        offset = range_pa(offset)
        logger.debug(f"Offset {offset:.3f} from rotator={rotator_angle:.3f}, PA={position_angle:.3f}")
        return offset

    def recalibrate(self, new_offset: float, pier_side: Optional[PierSide] = None):
        """Replace the stored offset and persist it."""
        new_offset = range_pa(_check_finite("new_offset", new_offset))
        with self._lock:
            self._offset = new_offset
            if pier_side is not None:
                self._calibration_pier_side = pier_side
            if self._option_store is not None:
                self._option_store.set_pa_offset(new_offset)
        logger.info(f"Rotator recalibrated: PA offset={new_offset:.3f} deg")

    def image_flip_detected(self, image_pier_side: Optional[PierSide] = None) -> bool:
        """
        Whether an image's position angle needs a 180 degree correction.

        Uses the given pier side or, when omitted, the one stored with
        set_image_pier_side(). Nothing is detected unless both the image's
        pier side and the calibration pier side are known. Otherwise the
        result is mount_flipped XOR (image side == calibration side).
        """
        with self._lock:
            side = self._image_pier_side if image_pier_side is None else image_pier_side
            if PierSide.UNKNOWN in (side, self._calibration_pier_side):
                return False
            return self._mount_flipped != (side == self._calibration_pier_side)

    def apply_pier_side(self, side: PierSide) -> bool:
        """
        Take a new mount pier side and update the flip state from it.

        While the calibration pier side is unknown, the first known side
        reported becomes the calibration side.

        Returns:
            The new mount_flipped value
        """
        with self._lock:
            self._mount_pier_side = side
            if self._calibration_pier_side == PierSide.UNKNOWN and side != PierSide.UNKNOWN:
                self._calibration_pier_side = side
            self.set_mount_flipped(pier_flip(side, self._calibration_pier_side))
            return self._mount_flipped

    def calibrate(self, rotator_angle: float, position_angle: float) -> float:
        """
        Recalibrate from one measured rotator angle / camera PA pair.

        The offset is solved for the current flip state and stored in the
        same locked step. If no calibration pier side is known yet, the side
        the mount is on now is recorded with it.

        Returns:
            The new offset in degrees
        """
        with self._lock:
            offset = self.offset_from_measurement(rotator_angle, position_angle)
            pier_side = None
            if self._calibration_pier_side == PierSide.UNKNOWN:
                pier_side = self._mount_pier_side
            self.recalibrate(offset, pier_side=pier_side)
            return offset

    def shortest_angular_difference(self, diff: float) -> float:
        return shortest_angular_difference(diff)
