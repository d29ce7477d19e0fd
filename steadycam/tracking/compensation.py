"""
Per-frame compensating transforms.

The corrective transform moves frame i from the actual camera path onto the
smoothed one. An optional fixed zoom about the frame center is composed on
top so the exposed borders fall outside the output, and both are applied
as a single warp.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import cv2
import numpy as np


def corrective_matrix(diff: Sequence[float]) -> np.ndarray:
    """
    Build the 2x3 rotation + translation for a trajectory difference.

    Args:
        diff: (x, y, a) of smoothed - actual, a in radians

    Returns:
        2x3 float64 affine matrix
    """
    dx, dy, da = float(diff[0]), float(diff[1]), float(diff[2])
    cos_a = math.cos(da)
    sin_a = math.sin(da)
    return np.array([
        [cos_a, -sin_a, dx],
        [sin_a, cos_a, dy],
    ], dtype=np.float64)


def translation_matrix(shift: Sequence[float]) -> np.ndarray:
    """Pure translation by (x, y) as a 2x3 matrix."""
    return np.array([
        [1.0, 0.0, float(shift[0])],
        [0.0, 1.0, float(shift[1])],
    ], dtype=np.float64)


def zoom_matrix(width: int, height: int, zoom: float) -> np.ndarray:
    """
    Uniform scale about the frame center in homogeneous (3x3) form.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        zoom: Scale factor (1.0 = no zoom)
    """
    center = (width / 2.0, height / 2.0)
    Ms = cv2.getRotationMatrix2D(center, 0, zoom)
    return np.append(Ms, [[0.0, 0.0, 1.0]], axis=0)


def to_homogeneous(matrix: np.ndarray) -> np.ndarray:
    """Lift a 2x3 affine matrix to 3x3."""
    return np.vstack([matrix, [0.0, 0.0, 1.0]])


def compose(corrective: np.ndarray, zoom: np.ndarray | None = None) -> np.ndarray:
    """
    Combine a corrective transform with a zoom into one 2x3 warp.

    The corrective transform applies first (in frame space) and the zoom
    after it: ``final = zoom @ corrective``.
    """
    if zoom is None:
        return np.asarray(corrective, dtype=np.float64)[:2].copy()
    M = np.matmul(zoom, to_homogeneous(np.asarray(corrective, dtype=np.float64)[:2]))
    return M[:2]


@dataclass
class StabilizationPlan:
    """
    Output of the analysis pass: actual and smoothed paths plus the zoom.

    ``transform(i)`` depends only on ``trajectory[i]`` and ``smoothed[i]``,
    so frames can be rendered in any order.
    """
    trajectory: np.ndarray
    smoothed: np.ndarray
    width: int
    height: int
    zoom: float = 1.0

    def __post_init__(self):
        if self.trajectory.shape != self.smoothed.shape:
            raise ValueError(
                f"Trajectory shapes differ: {self.trajectory.shape} vs {self.smoothed.shape}"
            )
        self._zoom = None if self.zoom == 1.0 else zoom_matrix(self.width, self.height, self.zoom)

    def __len__(self) -> int:
        return len(self.trajectory)

    def differences(self) -> np.ndarray:
        """(N, 3) array of smoothed - actual."""
        return self.smoothed - self.trajectory

    def transform(self, index: int) -> np.ndarray:
        """Final 2x3 warp for frame ``index``."""
        diff = self.smoothed[index] - self.trajectory[index]
        return compose(corrective_matrix(diff), self._zoom)
