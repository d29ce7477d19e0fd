"""
Inter-frame motion observation.

A motion observer looks at a previous/current grayscale frame pair and
reports the rigid camera motion between them. Two strategies are provided:

- FlowMotionObserver: Shi-Tomasi corners followed by pyramidal
  Lucas-Kanade optical flow
- DescriptorMotionObserver: ORB keypoints matched by Hamming distance

Both share one fallback policy: whenever the evidence is too thin (no
features, too few correspondences, failed robust fit) the observation
carries the identity estimate and a status saying why, so callers never
branch on empty results themselves.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol
import logging

import cv2
import numpy as np

from steadycam.core.config import MotionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MotionEstimate:
    """Relative rigid motion from frame i-1 to frame i."""
    dx: float = 0.0
    dy: float = 0.0
    dangle: float = 0.0

    @classmethod
    def identity(cls) -> "MotionEstimate":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "MotionEstimate":
        """Decompose a 2x3 similarity transform into (dx, dy, dangle)."""
        return cls(
            dx=float(matrix[0, 2]),
            dy=float(matrix[1, 2]),
            dangle=math.atan2(float(matrix[1, 0]), float(matrix[0, 0])),
        )

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.dx, self.dy, self.dangle)


class ObservationStatus(Enum):
    """Why an observation holds the estimate it does."""
    OK = "ok"
    NO_FEATURES = "no_features"
    TOO_FEW_CORRESPONDENCES = "too_few_correspondences"
    FIT_FAILED = "fit_failed"


@dataclass(frozen=True)
class Observation:
    """A motion estimate together with the evidence status behind it."""
    estimate: MotionEstimate
    status: ObservationStatus = ObservationStatus.OK
    correspondences: int = 0

    @classmethod
    def fallback(cls, status: ObservationStatus, correspondences: int = 0) -> "Observation":
        """Identity observation for degraded evidence."""
        return cls(MotionEstimate.identity(), status, correspondences)

    @property
    def is_fallback(self) -> bool:
        return self.status is not ObservationStatus.OK


class MotionObserver(Protocol):
    """Estimates camera motion between two grayscale frames."""

    def observe(
        self,
        prev_gray: np.ndarray,
        curr_gray: np.ndarray,
        mask: np.ndarray | None = None,
    ) -> Observation:
        ...


def estimate_similarity(
    prev_pts: np.ndarray,
    curr_pts: np.ndarray,
    min_correspondences: int = 5,
    ransac_threshold: float = 3.0,
) -> Observation:
    """
    Fit a rotation + uniform scale + translation to point correspondences.

    Args:
        prev_pts: Nx2 (or Nx1x2) points in the previous frame
        curr_pts: Matching points in the current frame
        min_correspondences: Fewer valid pairs than this yields identity
        ransac_threshold: RANSAC inlier reprojection threshold in pixels

    Returns:
        Observation with the decomposed estimate or an identity fallback
    """
    prev_pts = np.asarray(prev_pts, dtype=np.float32).reshape(-1, 2)
    curr_pts = np.asarray(curr_pts, dtype=np.float32).reshape(-1, 2)
    count = len(prev_pts)

    # A similarity fit needs at least two pairs whatever the configured floor
    if count < max(min_correspondences, 2):
        return Observation.fallback(ObservationStatus.TOO_FEW_CORRESPONDENCES, count)

    matrix, _inliers = cv2.estimateAffinePartial2D(
        prev_pts,
        curr_pts,
        method=cv2.RANSAC,
        ransacReprojThreshold=ransac_threshold,
    )
    if matrix is None:
        return Observation.fallback(ObservationStatus.FIT_FAILED, count)

    return Observation(MotionEstimate.from_matrix(matrix), ObservationStatus.OK, count)


class FlowMotionObserver:
    """
    Motion from Shi-Tomasi corners tracked with Lucas-Kanade optical flow.

    Example:
        >>> observer = FlowMotionObserver(max_features=200)
        >>> obs = observer.observe(prev_gray, curr_gray)
        >>> obs.estimate.dx, obs.status
    """

    def __init__(
        self,
        max_features: int = 200,
        quality_level: float = 0.01,
        min_distance: int = 30,
        min_correspondences: int = 5,
        ransac_threshold: float = 3.0,
    ):
        self.min_correspondences = min_correspondences
        self.ransac_threshold = ransac_threshold

        # Shi-Tomasi corner detection parameters
        self.feature_params = {
            "maxCorners": max_features,
            "qualityLevel": quality_level,
            "minDistance": min_distance,
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

    def observe(
        self,
        prev_gray: np.ndarray,
        curr_gray: np.ndarray,
        mask: np.ndarray | None = None,
    ) -> Observation:
        prev_pts = cv2.goodFeaturesToTrack(prev_gray, mask=mask, **self.feature_params)
        if prev_pts is None or len(prev_pts) == 0:
            return Observation.fallback(ObservationStatus.NO_FEATURES)

        curr_pts, status, _err = cv2.calcOpticalFlowPyrLK(
            prev_gray, curr_gray, prev_pts, None, **self.lk_params
        )
        if curr_pts is None or status is None:
            return Observation.fallback(ObservationStatus.TOO_FEW_CORRESPONDENCES)

        valid = status.ravel() == 1
        return estimate_similarity(
            prev_pts[valid],
            curr_pts[valid],
            self.min_correspondences,
            self.ransac_threshold,
        )


class DescriptorMotionObserver:
    """
    Motion from ORB keypoints matched between frames.

    Cross-checked brute-force Hamming matching keeps only mutual best
    matches, which serve as the valid correspondences.
    """

    def __init__(
        self,
        max_features: int = 3000,
        min_correspondences: int = 5,
        ransac_threshold: float = 1.0,
    ):
        self.min_correspondences = min_correspondences
        self.ransac_threshold = ransac_threshold
        self.detector = cv2.ORB_create(nfeatures=max_features)
        self.matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=True)

    def observe(
        self,
        prev_gray: np.ndarray,
        curr_gray: np.ndarray,
        mask: np.ndarray | None = None,
    ) -> Observation:
        kp1, desc1 = self.detector.detectAndCompute(prev_gray, mask)
        if desc1 is None or len(kp1) == 0:
            return Observation.fallback(ObservationStatus.NO_FEATURES)

        kp2, desc2 = self.detector.detectAndCompute(curr_gray, None)
        if desc2 is None or len(kp2) == 0:
            return Observation.fallback(ObservationStatus.TOO_FEW_CORRESPONDENCES)

        matches = self.matcher.match(desc1, desc2)
        pts1 = np.float32([kp1[m.queryIdx].pt for m in matches]).reshape(-1, 2)
        pts2 = np.float32([kp2[m.trainIdx].pt for m in matches]).reshape(-1, 2)

        return estimate_similarity(
            pts1, pts2, self.min_correspondences, self.ransac_threshold
        )


def make_observer(config: MotionConfig) -> MotionObserver:
    """
    Build the observer selected by ``config.method``.

    Raises:
        ValueError: If the method is unknown
    """
    if config.method == "flow":
        return FlowMotionObserver(
            max_features=config.max_features,
            quality_level=config.quality_level,
            min_distance=config.min_distance,
            min_correspondences=config.min_correspondences,
            ransac_threshold=config.ransac_threshold,
        )
    if config.method == "orb":
        return DescriptorMotionObserver(
            max_features=config.max_features,
            min_correspondences=config.min_correspondences,
            ransac_threshold=config.ransac_threshold,
        )
    raise ValueError(f"Unknown motion method: {config.method}")
