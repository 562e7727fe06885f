"""Tests for the frame-difference motion proxy."""

import numpy as np
import pytest

from models import RasterFrame
from motion import (
    FALLBACK_MOTION,
    FALLBACK_SCENE_CHANGE,
    changed_pixel_percentage,
    estimate_motion,
    frame_motion,
    frame_scene_change,
)


def _flat(value, shape=(90, 160)):
    return np.full(shape, value, dtype=np.uint8)


def test_identical_frames_have_zero_motion():
    a = np.random.default_rng(0).integers(0, 256, size=(90, 160), dtype=np.uint8)
    assert estimate_motion(a, a.copy()) == 0.0
    assert changed_pixel_percentage(a, a.copy()) == 0.0


def test_motion_is_mean_absolute_difference():
    assert estimate_motion(_flat(10), _flat(35)) == pytest.approx(25.0)
    assert estimate_motion(_flat(200), _flat(0)) == pytest.approx(200.0)


def test_changed_pixels_respects_threshold():
    assert changed_pixel_percentage(_flat(0), _flat(50)) == 0.0
    assert changed_pixel_percentage(_flat(0), _flat(51)) == 100.0

    half = _flat(0, (50, 50))
    half[:, 25:] = 255
    assert changed_pixel_percentage(_flat(0, (50, 50)), half) == pytest.approx(50.0)


def test_unreadable_frames_fall_back_to_constants():
    good = RasterFrame(0, 0.0, 160, 90, _flat(100))
    bad = RasterFrame(1, 0.5, 0, 0, None, "unreadable")
    assert frame_motion(good, bad) == FALLBACK_MOTION
    assert frame_scene_change(bad, good) == FALLBACK_SCENE_CHANGE


def test_corrupt_pixels_fall_back_to_constants():
    good = RasterFrame(0, 0.0, 160, 90, _flat(100))
    corrupt = RasterFrame(1, 0.5, 160, 90, np.zeros((90, 160, 2), dtype=np.uint8))
    assert frame_motion(good, corrupt) == FALLBACK_MOTION
    assert frame_scene_change(corrupt, good) == FALLBACK_SCENE_CHANGE


def test_changes_outside_the_centre_crop_are_ignored():
    a = _flat(0)
    b = _flat(0)
    b[:, :20] = 255
    b[:, 140:] = 255
    assert estimate_motion(a, b) == 0.0
