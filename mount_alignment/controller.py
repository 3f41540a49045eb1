#!/usr/bin/env python3
"""
mount_alignment/controller.py - Rotator Calibration Controller

Owns an AngleConventionConverter together with the option store it persists
to, and is the single place mount pier-side notifications are delivered.
Whatever monitors the mount registers controller.pier_side_changed as its
callback; the controller updates the converter's flip state and forwards the
new side to its own listeners.
"""

import logging
from typing import Callable, List, Optional

from .config import OptionStore
from .rotator import AngleConventionConverter, PierSide, pier_flip

logger = logging.getLogger(__name__)

PierSideListener = Callable[[PierSide], None]


class RotatorController:
    """
    Rotator calibration and angle conversion for one optical train.

    Each controller holds its own converter state, so several trains (or
    several tests) can run side by side.
    """

    def __init__(
        self,
        option_store: Optional[OptionStore] = None,
        pier_side: PierSide = PierSide.UNKNOWN,
        calibration_pier_side: Optional[PierSide] = None
    ):
        """
        Initialize the controller.

        Parameters
        ----------
        option_store : OptionStore, optional
            Source of the persisted PA offset; recalibrations are written back
            to it. None keeps everything in memory.
        pier_side : PierSide
            Mount pier side at start-up
        calibration_pier_side : PierSide, optional
            Pier side the stored offset was calibrated on (defaults to
            pier_side)
        """
        self.option_store = option_store
        self._listeners: List[PierSideListener] = []

        offset = option_store.get_pa_offset() if option_store is not None else 0.0
        if calibration_pier_side is None:
            calibration_pier_side = pier_side

        self.converter = AngleConventionConverter(
            offset=offset,
            mount_flipped=pier_flip(pier_side, calibration_pier_side),
            calibration_pier_side=calibration_pier_side,
            option_store=option_store,
            mount_pier_side=pier_side
        )
        logger.info(f"RotatorController initialized: offset={offset:.3f} deg, pier side={pier_side.value}")

    @property
    def mount_pier_side(self) -> PierSide:
        return self.converter.mount_pier_side

    def add_pier_side_listener(self, callback: PierSideListener):
        self._listeners.append(callback)

    def remove_pier_side_listener(self, callback: PierSideListener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def pier_side_changed(self, side: PierSide):
        """Notification handler for a new mount pier side."""
        flipped = self.converter.apply_pier_side(side)
        logger.info(f"Pier side changed to {side.value} (flipped={flipped})")

        for listener in list(self._listeners):
            listener(side)

    def calibrate(self, rotator_angle: float, position_angle: float) -> float:
        """
        Recalibrate from one measured rotator angle / camera PA pair.

        Returns
        -------
        float
            The new offset in degrees, already stored and persisted
        """
        return self.converter.calibrate(rotator_angle, position_angle)

    def camera_position_angle(self, rotator_angle: float, image_flipped: bool = False) -> float:
        return self.converter.circular_to_position_angle(rotator_angle, image_flipped)

    def rotator_angle(self, position_angle: float) -> float:
        return self.converter.position_angle_to_circular(position_angle)

    def set_image_pier_side(self, side: PierSide):
        self.converter.set_image_pier_side(side)

    def image_flip_detected(self, image_pier_side: Optional[PierSide] = None) -> bool:
        return self.converter.image_flip_detected(image_pier_side)
