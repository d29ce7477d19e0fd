"""
Tests for object-lock tracking.
"""

import numpy as np
import pytest

from conftest import pan_frames


class TestTrackState:
    """Tests for TrackState."""

    def test_advance_opposes_motion(self):
        """A subject moving right by 50 px is compensated by -50 px."""
        from steadycam.tracking.tracker import TrackState

        state = TrackState()
        state.advance((50.0, 0.0))
        assert state.cumulative_shift == (-50.0, 0.0)
        state.advance((-20.0, 5.0))
        assert state.cumulative_shift == (-30.0, -5.0)

    def test_live_count(self):
        from steadycam.tracking.tracker import TrackState

        state = TrackState()
        assert state.live_count == 0
        state.points = np.zeros((4, 1, 2), dtype=np.float32)
        assert state.live_count == 4


class TestObjectLockTracker:
    """Tests for ObjectLockTracker."""

    def test_initialization(self):
        """Test tracker defaults."""
        from steadycam.tracking.tracker import ObjectLockTracker, TrackPhase

        tracker = ObjectLockTracker()
        assert tracker.reseed_threshold == 30
        assert tracker.reseed_interval == 30
        assert tracker.frame_count == 0
        assert tracker.phase is TrackPhase.RESEEDING

    def test_from_config(self):
        from steadycam.core.config import LockConfig
        from steadycam.tracking.tracker import ObjectLockTracker

        tracker = ObjectLockTracker.from_config(LockConfig(reseed_threshold=10, reseed_interval=0))
        assert tracker.reseed_threshold == 10
        assert tracker.reseed_interval == 0

    def test_update_before_initialize(self):
        from steadycam.tracking.tracker import ObjectLockTracker

        with pytest.raises(RuntimeError):
            ObjectLockTracker().update(np.zeros((48, 64), dtype=np.uint8))

    def test_seeds_inside_roi(self):
        """Initial points lie in the ROI centered on the frame."""
        from steadycam.tracking.tracker import ObjectLockTracker, TrackPhase

        frame = pan_frames(1)[0]
        tracker = ObjectLockTracker(roi_fraction=0.5)
        points = tracker.initialize(frame)

        assert len(points) > 0
        assert tracker.state.roi == (80, 60, 160, 120)
        pts = points.reshape(-1, 2)
        assert np.all((pts[:, 0] >= 80) & (pts[:, 0] < 240))
        assert np.all((pts[:, 1] >= 60) & (pts[:, 1] < 180))
        assert tracker.phase is TrackPhase.TRACKING
        assert tracker.reseed_count == 1

    def test_follows_subject(self):
        """A 5 px/frame drift accumulates a matching compensating shift."""
        from steadycam.tracking.tracker import ObjectLockTracker

        frames = pan_frames(10, step=(5, 0))
        tracker = ObjectLockTracker()
        tracker.initialize(frames[0])
        for frame in frames[1:]:
            stats = tracker.update(frame)
            assert stats.tracked > 0
            assert stats.displacement[0] == pytest.approx(-5.0, abs=0.5)

        sx, sy = tracker.state.cumulative_shift
        assert sx == pytest.approx(45.0, abs=1.0)
        assert sy == pytest.approx(0.0, abs=1.0)
        assert np.allclose(tracker.compensation(), [[1, 0, sx], [0, 1, sy]])
        x, y = tracker.subject_position()
        assert x == pytest.approx(160 + 45, abs=1.0)
        assert y == pytest.approx(120, abs=1.0)

    def test_periodic_reseed(self):
        """Points are refreshed every reseed_interval frames."""
        from steadycam.tracking.tracker import ObjectLockTracker

        frames = pan_frames(7, step=(0, 0))
        tracker = ObjectLockTracker(reseed_threshold=0, reseed_interval=3)
        tracker.initialize(frames[0])

        reseeded = [tracker.update(frame).reseeded for frame in frames[1:]]
        assert reseeded == [False, False, True, False, False, True]
        assert tracker.reseed_count == 3

    def test_interval_zero_disables_periodic_reseed(self):
        from steadycam.tracking.tracker import ObjectLockTracker

        frames = pan_frames(6, step=(0, 0))
        tracker = ObjectLockTracker(reseed_threshold=0, reseed_interval=0)
        tracker.initialize(frames[0])
        for frame in frames[1:]:
            assert tracker.update(frame).reseeded is False
        assert tracker.reseed_count == 1

    def test_lost_points_reseed(self):
        """Running out of points triggers a re-seed with zero displacement."""
        from steadycam.tracking.tracker import ObjectLockTracker

        blank = np.full((240, 320, 3), 128, dtype=np.uint8)
        tracker = ObjectLockTracker()
        assert len(tracker.initialize(blank)) == 0

        stats = tracker.update(blank)
        assert stats.tracked == 0
        assert stats.displacement == (0.0, 0.0)
        assert stats.reseeded is True
        assert tracker.state.cumulative_shift == (0.0, 0.0)

    def test_reseed_center_offset_by_shift(self):
        """The re-seed center is the frame center plus the cumulative shift."""
        from steadycam.tracking.tracker import ObjectLockTracker

        tracker = ObjectLockTracker(roi_fraction=0.5)
        tracker.initialize(np.full((240, 320), 128, dtype=np.uint8))
        tracker.state.cumulative_shift = (-50.0, 0.0)

        assert tracker.subject_position() == (110.0, 120.0)
        assert tracker._roi_around(tracker.subject_position()) == (30, 60, 160, 120)

    def test_reseed_uses_shifted_roi(self):
        """A re-seed places the new ROI around the shifted center."""
        from steadycam.tracking.tracker import ObjectLockTracker

        blank = np.full((240, 320), 128, dtype=np.uint8)
        tracker = ObjectLockTracker(roi_fraction=0.5)
        tracker.initialize(blank)
        tracker.state.cumulative_shift = (40.0, -20.0)

        stats = tracker.update(blank)
        assert stats.reseeded is True
        assert tracker.state.roi == (120, 40, 160, 120)

    def test_roi_clamped_to_frame(self):
        """Re-seed ROIs never leave the frame."""
        from steadycam.tracking.tracker import ObjectLockTracker

        tracker = ObjectLockTracker(roi_fraction=0.5)
        tracker.initialize(np.full((240, 320), 128, dtype=np.uint8))
        tracker.state.cumulative_shift = (500.0, -500.0)

        roi = tracker._roi_around(tracker.subject_position())
        assert roi == (160, 0, 160, 120)

    def test_reset(self):
        from steadycam.tracking.tracker import ObjectLockTracker

        tracker = ObjectLockTracker()
        tracker.initialize(pan_frames(1)[0])
        tracker.reset()
        assert tracker.frame_count == 0
        assert tracker.state.live_count == 0
        assert tracker.prev_gray is None

    def test_stats_to_dict(self):
        from steadycam.tracking.tracker import TrackingStats

        stats = TrackingStats(frame=2, tracked=10, lost=1, total=10)
        assert stats.to_dict()["tracked"] == 10
        assert stats.to_dict()["reseeded"] is False
