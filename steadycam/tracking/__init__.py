"""
Tracking module - Motion observation, trajectories and compensation.

This module provides:
- FlowMotionObserver / DescriptorMotionObserver: per-frame rigid motion
- accumulate_trajectory / smooth_trajectory: absolute and smoothed paths
- StabilizationPlan: per-frame compensating transforms with zoom
- ObjectLockTracker: subject tracking for object-lock stabilization

Example:
    >>> from steadycam.tracking import FlowMotionObserver, accumulate_trajectory
    >>> observer = FlowMotionObserver(max_features=200)
    >>> estimates = [MotionEstimate.identity()]
    >>> estimates.append(observer.observe(prev_gray, curr_gray).estimate)
    >>> trajectory = accumulate_trajectory(estimates)
"""

from steadycam.tracking.motion import (
    MotionEstimate,
    Observation,
    ObservationStatus,
    MotionObserver,
    FlowMotionObserver,
    DescriptorMotionObserver,
    estimate_similarity,
    make_observer,
)
from steadycam.tracking.trajectory import (
    TrajectoryPoint,
    accumulate_trajectory,
    smoothing_weights,
    smooth_trajectory,
)
from steadycam.tracking.compensation import (
    StabilizationPlan,
    corrective_matrix,
    translation_matrix,
    zoom_matrix,
    compose,
)
from steadycam.tracking.tracker import (
    ObjectLockTracker,
    TrackState,
    TrackPhase,
    TrackingStats,
)

__all__ = [
    "MotionEstimate",
    "Observation",
    "ObservationStatus",
    "MotionObserver",
    "FlowMotionObserver",
    "DescriptorMotionObserver",
    "estimate_similarity",
    "make_observer",
    "TrajectoryPoint",
    "accumulate_trajectory",
    "smoothing_weights",
    "smooth_trajectory",
    "StabilizationPlan",
    "corrective_matrix",
    "translation_matrix",
    "zoom_matrix",
    "compose",
    "ObjectLockTracker",
    "TrackState",
    "TrackPhase",
    "TrackingStats",
]
