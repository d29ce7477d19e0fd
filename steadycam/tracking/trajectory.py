"""
Camera trajectory accumulation and smoothing.

The absolute camera path is the running sum of per-frame motion
estimates. Smoothing is a symmetric, non-causal window over that path, so
the whole trajectory must exist before any smoothed value is computed.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.ndimage import correlate1d

from steadycam.core.config import SmoothingKernel
from steadycam.tracking.motion import MotionEstimate


@dataclass(frozen=True)
class TrajectoryPoint:
    """Cumulative camera position (x, y) and rotation angle a in radians."""
    x: float = 0.0
    y: float = 0.0
    a: float = 0.0

    def __add__(self, other: "TrajectoryPoint") -> "TrajectoryPoint":
        return TrajectoryPoint(self.x + other.x, self.y + other.y, self.a + other.a)

    def __sub__(self, other: "TrajectoryPoint") -> "TrajectoryPoint":
        return TrajectoryPoint(self.x - other.x, self.y - other.y, self.a - other.a)

    @classmethod
    def from_row(cls, row: Sequence[float]) -> "TrajectoryPoint":
        return cls(float(row[0]), float(row[1]), float(row[2]))


def accumulate_trajectory(estimates: Sequence[MotionEstimate]) -> np.ndarray:
    """
    Integrate motion estimates into an absolute path.

    Args:
        estimates: One estimate per frame; estimates[0] belongs to the first
            frame and is the identity by definition

    Returns:
        (N, 3) float64 array of (x, y, a) with trajectory[0] == (0, 0, 0)
    """
    if len(estimates) == 0:
        return np.zeros((0, 3), dtype=np.float64)

    deltas = np.array([e.as_tuple() for e in estimates], dtype=np.float64)
    deltas[0] = 0.0
    # Sequential running sum: trajectory[i] = trajectory[i-1] + estimate[i]
    return np.cumsum(deltas, axis=0)


def smoothing_weights(
    radius: int,
    kernel: SmoothingKernel = SmoothingKernel.UNIFORM,
    sigma_divisor: float = 2.5,
) -> np.ndarray:
    """
    Window weights for offsets -radius..radius.

    Args:
        radius: Half window size in frames
        kernel: Uniform (box) or Gaussian weighting
        sigma_divisor: Gaussian sigma is radius / sigma_divisor

    Returns:
        1D array of length 2 * radius + 1
    """
    if radius < 0:
        raise ValueError(f"Smoothing radius must be >= 0, got {radius}")
    if radius == 0:
        return np.ones(1, dtype=np.float64)

    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    if kernel is SmoothingKernel.UNIFORM:
        return np.ones_like(offsets)

    sigma = radius / sigma_divisor
    return np.exp(-(offsets ** 2) / (2.0 * sigma ** 2))


def smooth_trajectory(
    trajectory: np.ndarray,
    radius: int,
    kernel: SmoothingKernel = SmoothingKernel.UNIFORM,
    sigma_divisor: float = 2.5,
) -> np.ndarray:
    """
    Weighted moving average of a trajectory.

    Each output sample averages the samples within ``radius`` frames that
    actually exist, normalized by the weights of those samples only, so
    the ends of the path are smoothed with a shorter, one-sided window.

    Args:
        trajectory: (N, 3) absolute path
        radius: Half window size in frames (0 returns the input unchanged)
        kernel: Window weighting
        sigma_divisor: Gaussian sigma divisor

    Returns:
        (N, 3) smoothed path
    """
    traj = np.asarray(trajectory, dtype=np.float64).reshape(-1, 3)
    weights = smoothing_weights(radius, kernel, sigma_divisor)
    if len(traj) == 0 or radius == 0:
        return traj.copy()

    # Zero padding plus a correlated ones-mask gives the in-range weight sum
    sums = correlate1d(traj, weights, axis=0, mode="constant", cval=0.0)
    used = correlate1d(np.ones(len(traj)), weights, mode="constant", cval=0.0)

    smoothed = traj.copy()
    valid = used > 0
    smoothed[valid] = sums[valid] / used[valid, None]
    return smoothed
