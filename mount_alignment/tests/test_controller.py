#!/usr/bin/env python3
"""
test_controller.py - Unit tests for the rotator calibration controller

Run with:
    PYTHONPATH=. python -m pytest mount_alignment/tests/test_controller.py -v
"""

import threading

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from mount_alignment.config import OptionStore
from mount_alignment.controller import RotatorController
from mount_alignment.rotator import PierSide


class TestInitialization:
    """Test controller start-up."""

    def test_offset_loaded_from_store(self, tmp_path):
        path = tmp_path / "options.yaml"
        OptionStore(path).set_pa_offset(10.0)

        controller = RotatorController(OptionStore(path), pier_side=PierSide.EAST)
        assert controller.converter.offset == 10.0, f"Expected stored offset 10.0, got {controller.converter.offset}"
        assert controller.converter.mount_flipped is False
        assert controller.camera_position_angle(200.0) == pytest.approx(-150.0), \
            "offset=10, rotator=200 should give PA=-150"

    def test_without_store(self):
        controller = RotatorController()
        assert controller.converter.offset == 0.0
        assert controller.mount_pier_side == PierSide.UNKNOWN

    def test_starts_flipped(self):
        controller = RotatorController(
            pier_side=PierSide.WEST,
            calibration_pier_side=PierSide.EAST
        )
        assert controller.converter.mount_flipped is True

    def test_independent_states(self):
        """Test two controllers do not share state."""
        a = RotatorController(OptionStore())
        b = RotatorController(OptionStore())
        a.converter.recalibrate(25.0)
        assert b.converter.offset == 0.0, f"Second controller picked up offset {b.converter.offset}"


class TestPierSideNotifications:
    """Test pier side change routing."""

    def test_flip_and_back(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        controller.pier_side_changed(PierSide.WEST)
        assert controller.mount_pier_side == PierSide.WEST
        assert controller.converter.mount_flipped is True

        controller.pier_side_changed(PierSide.EAST)
        assert controller.converter.mount_flipped is False

    def test_first_report_sets_reference(self):
        """Test an unknown calibration side adopts the first real report."""
        controller = RotatorController()
        controller.pier_side_changed(PierSide.WEST)
        assert controller.converter.calibration_pier_side == PierSide.WEST
        assert controller.converter.mount_flipped is False

    def test_listeners_receive_side(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        received = []
        controller.add_pier_side_listener(received.append)

        controller.pier_side_changed(PierSide.WEST)
        controller.pier_side_changed(PierSide.EAST)
        assert received == [PierSide.WEST, PierSide.EAST]

        controller.remove_pier_side_listener(received.append)
        controller.pier_side_changed(PierSide.WEST)
        assert received == [PierSide.WEST, PierSide.EAST]

    def test_conversions_follow_flip(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        controller.converter.recalibrate(10.0)
        assert controller.camera_position_angle(30.0) == pytest.approx(40.0)

        controller.pier_side_changed(PierSide.WEST)
        assert controller.camera_position_angle(30.0) == pytest.approx(-140.0)
        assert controller.rotator_angle(-140.0) == pytest.approx(30.0)


class TestCalibrate:
    """Test calibration through the controller."""

    def test_calibrate_persists(self, tmp_path):
        path = tmp_path / "options.yaml"
        controller = RotatorController(OptionStore(path), pier_side=PierSide.EAST)

        offset = controller.calibrate(200.0, -150.0)
        assert offset == pytest.approx(10.0), f"Expected offset 10.0, got {offset}"
        stored = OptionStore(path).get_pa_offset()
        assert stored == pytest.approx(10.0), f"Expected persisted offset 10.0, got {stored}"

    def test_calibrate_while_flipped(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        controller.pier_side_changed(PierSide.WEST)

        controller.calibrate(30.0, -140.0)
        assert controller.converter.offset == pytest.approx(10.0), \
            f"Expected offset 10.0, got {controller.converter.offset}"
        assert controller.camera_position_angle(30.0) == pytest.approx(-140.0)

        controller.pier_side_changed(PierSide.EAST)
        assert controller.camera_position_angle(30.0) == pytest.approx(40.0)

    def test_calibrate_sets_unknown_reference(self):
        controller = RotatorController()
        controller.calibrate(0.0, 5.0)
        assert controller.converter.calibration_pier_side == PierSide.UNKNOWN

        controller = RotatorController(pier_side=PierSide.EAST, calibration_pier_side=PierSide.UNKNOWN)
        assert controller.converter.mount_flipped is False
        controller.calibrate(0.0, 5.0)
        assert controller.converter.calibration_pier_side == PierSide.EAST

    def test_calibrate_holds_off_pier_side_notification(self):
        """Test a pier side reported mid-calibration lands after it, not inside it."""
        controller = RotatorController()
        store_offset = controller.converter.recalibrate
        notifier = threading.Thread(target=controller.pier_side_changed, args=(PierSide.WEST,))
        blocked = []

        def notify_then_store(new_offset, pier_side=None):
            notifier.start()
            notifier.join(timeout=0.2)
            blocked.append(notifier.is_alive())
            store_offset(new_offset, pier_side=pier_side)

        controller.converter.recalibrate = notify_then_store
        controller.calibrate(30.0, 40.0)
        notifier.join()

        assert blocked == [True]
        assert controller.mount_pier_side == PierSide.WEST
        assert controller.converter.calibration_pier_side == PierSide.WEST
        assert controller.converter.mount_flipped is False
        pa = controller.camera_position_angle(30.0)
        assert pa == pytest.approx(40.0), f"Expected measured PA 40.0, got {pa}"


class TestImageFlip:
    """Test image flip detection through the controller."""

    def test_image_flip(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        controller.set_image_pier_side(PierSide.WEST)
        assert controller.image_flip_detected() is False
        assert controller.image_flip_detected(PierSide.EAST) is True

    def test_image_flip_after_mount_flip(self):
        controller = RotatorController(pier_side=PierSide.EAST)
        controller.pier_side_changed(PierSide.WEST)
        assert controller.image_flip_detected(PierSide.WEST) is True
        assert controller.image_flip_detected(PierSide.EAST) is False

    def test_default_controller_reports_no_flip(self):
        """Test nothing is detected while the calibration pier side is unknown."""
        controller = RotatorController()
        assert controller.image_flip_detected(PierSide.EAST) is False
        assert controller.image_flip_detected(PierSide.WEST) is False


if __name__ == "__main__":
    # Run tests when script is executed directly
    pytest.main([__file__, "-v"])
