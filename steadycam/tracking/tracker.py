"""
Object-lock tracking using Lucas-Kanade optical flow.

This module provides the ObjectLockTracker class which follows a subject
through video frames and accumulates the shift that keeps it anchored at
its starting position, re-seeding its points when they run low or go
stale.
"""

from dataclasses import dataclass, field
from enum import Enum
import logging

import cv2
import numpy as np

from steadycam.core.config import LockConfig
from steadycam.tracking.compensation import translation_matrix

logger = logging.getLogger(__name__)


class TrackPhase(Enum):
    """Tracker state."""
    TRACKING = "tracking"
    RESEEDING = "reseeding"


def _empty_points() -> np.ndarray:
    return np.empty((0, 1, 2), dtype=np.float32)


@dataclass
class TrackState:
    """
    Mutable per-run tracking state.

    Attributes:
        roi: (x, y, w, h) region the current points were seeded in
        points: Live tracked points (Nx1x2)
        cumulative_shift: Translation that keeps the subject in place
    """
    roi: tuple[int, int, int, int] | None = None
    points: np.ndarray = field(default_factory=_empty_points)
    cumulative_shift: tuple[float, float] = (0.0, 0.0)

    @property
    def live_count(self) -> int:
        return len(self.points)

    def advance(self, displacement: tuple[float, float]) -> None:
        """Move the camera opposite to the subject's displacement."""
        sx, sy = self.cumulative_shift
        self.cumulative_shift = (sx - float(displacement[0]), sy - float(displacement[1]))


@dataclass
class TrackingStats:
    """Statistics from a tracking update."""
    frame: int
    tracked: int
    lost: int
    total: int
    reseeded: bool = False
    displacement: tuple[float, float] = (0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "frame": self.frame,
            "tracked": self.tracked,
            "lost": self.lost,
            "total": self.total,
            "reseeded": self.reseeded,
            "displacement": self.displacement,
        }


class ObjectLockTracker:
    """
    Subject tracker that drives object-lock stabilization.

    Points are seeded inside a region of interest around the subject's
    estimated position. Each update tracks them with Lucas-Kanade flow,
    drops invalid tracks, and averages the survivors' motion into a single
    subject displacement. The tracker re-seeds when fewer than
    ``reseed_threshold`` points survive or every ``reseed_interval`` frames.

    Attributes:
        state: Current TrackState
        phase: TRACKING or RESEEDING
        frame_count: Frames seen so far

    Example:
        >>> tracker = ObjectLockTracker(reseed_threshold=30)
        >>> tracker.initialize(first_frame)
        >>> for frame in video:
        ...     stats = tracker.update(frame)
        ...     matrix = tracker.compensation()
    """

    def __init__(
        self,
        max_features: int = 200,
        quality_level: float = 0.01,
        min_distance: int = 7,
        block_size: int = 7,
        roi_fraction: float = 0.5,
        reseed_threshold: int = 30,
        reseed_interval: int = 30,
        fb_threshold: float | None = 1.0,
    ):
        """
        Initialize the tracker.

        Args:
            max_features: Points requested per seeding
            quality_level: Shi-Tomasi corner quality threshold (0-1)
            min_distance: Minimum distance between points in pixels
            block_size: Block size for corner detection
            roi_fraction: ROI width/height as a fraction of the frame
            reseed_threshold: Re-seed when fewer live points remain
            reseed_interval: Re-seed every N frames regardless (0 = never)
            fb_threshold: Max forward-backward error in pixels (None = off)
        """
        self.roi_fraction = roi_fraction
        self.reseed_threshold = reseed_threshold
        self.reseed_interval = reseed_interval
        self.fb_threshold = fb_threshold

        # Shi-Tomasi corner detection parameters
        self.feature_params = {
            "maxCorners": max_features,
            "qualityLevel": quality_level,
            "minDistance": min_distance,
            "blockSize": block_size,
        }

        # Lucas-Kanade optical flow parameters
        self.lk_params = {
            "winSize": (21, 21),
            "maxLevel": 3,
            "criteria": (
                cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT,
                30,
                0.01,
            ),
        }

        self.state = TrackState()
        self.phase = TrackPhase.RESEEDING
        self.prev_gray: np.ndarray | None = None
        self.frame_size: tuple[int, int] | None = None
        self.frame_count = 0
        self.frames_since_seed = 0
        self.reseed_count = 0

    @classmethod
    def from_config(cls, config: LockConfig) -> "ObjectLockTracker":
        return cls(
            max_features=config.max_features,
            quality_level=config.quality_level,
            min_distance=config.min_distance,
            roi_fraction=config.roi_fraction,
            reseed_threshold=config.reseed_threshold,
            reseed_interval=config.reseed_interval,
        )

    @staticmethod
    def _to_gray(frame: np.ndarray) -> np.ndarray:
        if frame.ndim == 3:
            return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        return frame

    def _create_roi_mask(self, shape: tuple[int, int], roi: tuple) -> np.ndarray:
        """Create a mask for the given ROI (x, y, w, h)."""
        mask = np.zeros(shape, dtype=np.uint8)
        x, y, w, h = [int(v) for v in roi]
        mask[y:y+h, x:x+w] = 255
        return mask

    def subject_position(self) -> tuple[float, float]:
        """
        Estimated subject position in the current frame.

        Re-seeding centers its ROI here: the frame center offset by the
        accumulated compensating shift, ``center + cumulative_shift``.
        """
        if self.frame_size is None:
            raise RuntimeError("Tracker not initialized. Call initialize() first.")
        width, height = self.frame_size
        sx, sy = self.state.cumulative_shift
        return (width / 2.0 + sx, height / 2.0 + sy)

    def _roi_around(self, center: tuple[float, float]) -> tuple[int, int, int, int]:
        """ROI of the configured size centered on a point, clamped to the frame."""
        width, height = self.frame_size
        roi_w = max(1, int(round(width * self.roi_fraction)))
        roi_h = max(1, int(round(height * self.roi_fraction)))
        x = int(round(center[0] - roi_w / 2.0))
        y = int(round(center[1] - roi_h / 2.0))
        x = min(max(0, x), width - roi_w)
        y = min(max(0, y), height - roi_h)
        return (x, y, roi_w, roi_h)

    def _seed(self, gray: np.ndarray) -> None:
        """Detect a fresh point set around the subject and resume tracking."""
        self.phase = TrackPhase.RESEEDING
        roi = self._roi_around(self.subject_position())
        mask = self._create_roi_mask(gray.shape, roi)

        points = cv2.goodFeaturesToTrack(gray, mask=mask, **self.feature_params)
        if points is None:
            points = _empty_points()
            logger.debug("Re-seed at frame %d found no points", self.frame_count)

        self.state.roi = roi
        self.state.points = points.astype(np.float32).reshape(-1, 1, 2)
        self.frames_since_seed = 0
        self.reseed_count += 1
        self.phase = TrackPhase.TRACKING

    def initialize(self, frame: np.ndarray) -> np.ndarray:
        """
        Seed tracking on the first frame.

        Args:
            frame: First video frame (BGR or grayscale)

        Returns:
            Array of seeded points (Nx1x2)
        """
        gray = self._to_gray(frame)
        self.frame_size = (gray.shape[1], gray.shape[0])
        self.state = TrackState()
        self.frame_count = 1
        self.reseed_count = 0
        self._seed(gray)
        self.prev_gray = gray
        return self.state.points.copy()

    def _validate_tracks(
        self,
        prev_points: np.ndarray,
        curr_points: np.ndarray,
        status: np.ndarray,
        gray: np.ndarray,
    ) -> np.ndarray:
        """Mask of tracks that survived flow status, FB consistency and bounds."""
        valid = status.ravel() == 1
        if not np.any(valid):
            return valid

        if self.fb_threshold is not None:
            back_points, back_status, _ = cv2.calcOpticalFlowPyrLK(
                gray, self.prev_gray, curr_points, None, **self.lk_params
            )
            fb_error = np.linalg.norm(
                prev_points.reshape(-1, 2) - back_points.reshape(-1, 2), axis=1
            )
            valid = valid & (back_status.ravel() == 1) & (fb_error < self.fb_threshold)

        h, w = gray.shape
        pts = curr_points.reshape(-1, 2)
        in_bounds = (
            (pts[:, 0] >= 0) & (pts[:, 0] < w) &
            (pts[:, 1] >= 0) & (pts[:, 1] < h)
        )
        return valid & in_bounds

    def update(self, frame: np.ndarray) -> TrackingStats:
        """
        Track the subject into the next frame.

        Args:
            frame: Next video frame (BGR or grayscale)

        Returns:
            TrackingStats for this frame
        """
        if self.prev_gray is None:
            raise RuntimeError("Tracker not initialized. Call initialize() first.")

        gray = self._to_gray(frame)
        self.frame_count += 1
        self.frames_since_seed += 1

        prev_points = self.state.points
        displacement = (0.0, 0.0)
        tracked = 0

        if len(prev_points) > 0:
            curr_points, status, _err = cv2.calcOpticalFlowPyrLK(
                self.prev_gray, gray, prev_points, None, **self.lk_params
            )
            valid = self._validate_tracks(prev_points, curr_points, status, gray)
            tracked = int(np.sum(valid))
            if tracked > 0:
                motion = curr_points[valid].reshape(-1, 2) - prev_points[valid].reshape(-1, 2)
                mean = motion.mean(axis=0)
                displacement = (float(mean[0]), float(mean[1]))
            self.state.points = curr_points[valid].reshape(-1, 1, 2)

        self.state.advance(displacement)

        stats = TrackingStats(
            frame=self.frame_count,
            tracked=tracked,
            lost=len(prev_points) - tracked,
            total=self.state.live_count,
            displacement=displacement,
        )

        stale = self.reseed_interval > 0 and self.frames_since_seed >= self.reseed_interval
        if self.state.live_count < self.reseed_threshold or stale:
            self._seed(gray)
            stats.reseeded = True
            stats.total = self.state.live_count

        self.prev_gray = gray
        return stats

    def compensation(self) -> np.ndarray:
        """Pure-translation 2x3 matrix for the current cumulative shift."""
        return translation_matrix(self.state.cumulative_shift)

    def reset(self) -> None:
        """Reset the tracker state."""
        self.state = TrackState()
        self.phase = TrackPhase.RESEEDING
        self.prev_gray = None
        self.frame_size = None
        self.frame_count = 0
        self.frames_since_seed = 0
        self.reseed_count = 0
