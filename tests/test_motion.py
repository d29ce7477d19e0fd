"""
Tests for inter-frame motion observation.
"""

import math

import cv2
import numpy as np
import pytest

from conftest import pan_frames


def _gray(frame):
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


class TestMotionEstimate:
    """Tests for MotionEstimate."""

    def test_identity(self):
        from steadycam.tracking.motion import MotionEstimate

        assert MotionEstimate.identity().as_tuple() == (0.0, 0.0, 0.0)

    def test_from_matrix(self):
        """Translation and angle are read from the similarity matrix."""
        from steadycam.tracking.motion import MotionEstimate

        angle = 0.2
        scale = 1.1
        matrix = np.array([
            [scale * math.cos(angle), -scale * math.sin(angle), 4.0],
            [scale * math.sin(angle), scale * math.cos(angle), -3.0],
        ])
        estimate = MotionEstimate.from_matrix(matrix)
        assert estimate.dx == 4.0
        assert estimate.dy == -3.0
        assert estimate.dangle == pytest.approx(angle)


class TestEstimateSimilarity:
    """Tests for the robust similarity fit."""

    def test_pure_translation(self):
        from steadycam.tracking.motion import ObservationStatus, estimate_similarity

        rng = np.random.default_rng(1)
        prev_pts = rng.uniform(0, 300, size=(40, 2)).astype(np.float32)
        curr_pts = prev_pts + np.float32([5.0, -2.0])

        obs = estimate_similarity(prev_pts, curr_pts)
        assert obs.status is ObservationStatus.OK
        assert obs.correspondences == 40
        assert obs.estimate.dx == pytest.approx(5.0, abs=1e-3)
        assert obs.estimate.dy == pytest.approx(-2.0, abs=1e-3)
        assert obs.estimate.dangle == pytest.approx(0.0, abs=1e-4)

    def test_outliers_rejected(self):
        """RANSAC ignores a minority of wild matches."""
        from steadycam.tracking.motion import estimate_similarity

        rng = np.random.default_rng(2)
        prev_pts = rng.uniform(0, 300, size=(60, 2)).astype(np.float32)
        curr_pts = prev_pts + np.float32([-3.0, 1.0])
        curr_pts[:10] = rng.uniform(0, 300, size=(10, 2))

        obs = estimate_similarity(prev_pts, curr_pts)
        assert obs.estimate.dx == pytest.approx(-3.0, abs=0.05)
        assert obs.estimate.dy == pytest.approx(1.0, abs=0.05)

    def test_too_few_correspondences(self):
        """Below the floor the estimate is the identity."""
        from steadycam.tracking.motion import ObservationStatus, estimate_similarity

        pts = np.float32([[0, 0], [10, 0], [0, 10]])
        obs = estimate_similarity(pts, pts + 1, min_correspondences=5)
        assert obs.status is ObservationStatus.TOO_FEW_CORRESPONDENCES
        assert obs.is_fallback
        assert obs.correspondences == 3
        assert obs.estimate.as_tuple() == (0.0, 0.0, 0.0)

    def test_single_point_never_fits(self):
        """A similarity needs two points whatever the configured floor."""
        from steadycam.tracking.motion import ObservationStatus, estimate_similarity

        pts = np.float32([[5, 5]])
        obs = estimate_similarity(pts, pts, min_correspondences=1)
        assert obs.status is ObservationStatus.TOO_FEW_CORRESPONDENCES


class TestFlowMotionObserver:
    """Tests for the optical flow observer."""

    def test_shift(self):
        """A 2 px pan is measured as -2 px of content motion."""
        from steadycam.tracking.motion import FlowMotionObserver, ObservationStatus

        frames = pan_frames(2, step=(2, 0))
        obs = FlowMotionObserver().observe(_gray(frames[0]), _gray(frames[1]))

        assert obs.status is ObservationStatus.OK
        assert obs.correspondences >= 5
        assert obs.estimate.dx == pytest.approx(-2.0, abs=0.1)
        assert obs.estimate.dy == pytest.approx(0.0, abs=0.1)
        assert obs.estimate.dangle == pytest.approx(0.0, abs=0.005)

    def test_static(self):
        """Identical frames give (near) zero motion."""
        from steadycam.tracking.motion import FlowMotionObserver

        frame = _gray(pan_frames(1)[0])
        obs = FlowMotionObserver().observe(frame, frame.copy())
        assert np.allclose(obs.estimate.as_tuple(), 0.0, atol=1e-3)

    def test_featureless(self):
        """Flat frames yield the identity with NO_FEATURES."""
        from steadycam.tracking.motion import FlowMotionObserver, ObservationStatus

        blank = np.full((240, 320), 128, dtype=np.uint8)
        obs = FlowMotionObserver().observe(blank, blank.copy())
        assert obs.status is ObservationStatus.NO_FEATURES
        assert obs.estimate.as_tuple() == (0.0, 0.0, 0.0)


class TestDescriptorMotionObserver:
    """Tests for the ORB observer."""

    def test_shift(self):
        from steadycam.tracking.motion import DescriptorMotionObserver, ObservationStatus

        frames = pan_frames(2, step=(0, 3))
        obs = DescriptorMotionObserver().observe(_gray(frames[0]), _gray(frames[1]))

        assert obs.status is ObservationStatus.OK
        assert obs.estimate.dx == pytest.approx(0.0, abs=0.5)
        assert obs.estimate.dy == pytest.approx(-3.0, abs=0.5)

    def test_featureless(self):
        from steadycam.tracking.motion import DescriptorMotionObserver, ObservationStatus

        blank = np.full((240, 320), 128, dtype=np.uint8)
        obs = DescriptorMotionObserver().observe(blank, blank.copy())
        assert obs.status is ObservationStatus.NO_FEATURES
        assert obs.is_fallback


class TestMakeObserver:
    """Tests for observer selection."""

    def test_selects_strategy(self):
        from steadycam.core.config import MotionConfig
        from steadycam.tracking.motion import (
            DescriptorMotionObserver, FlowMotionObserver, make_observer,
        )

        assert isinstance(make_observer(MotionConfig(method="flow")), FlowMotionObserver)
        assert isinstance(make_observer(MotionConfig(method="orb")), DescriptorMotionObserver)

    def test_unknown(self):
        from steadycam.core.config import MotionConfig
        from steadycam.tracking.motion import make_observer

        with pytest.raises(ValueError):
            make_observer(MotionConfig(method="sift"))
