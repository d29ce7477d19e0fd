"""
Frame renderer: warp, enhance, write.
"""

import cv2
import numpy as np

from steadycam.core.base import FrameFilter
from steadycam.core.video import FrameSink


class FrameRenderer:
    """
    Applies a frame's composed transform in a single warp, runs the
    enhancement chain and hands the result to the sink.

    The sink is responsible for normalizing the frame size to its own
    (even) dimensions.
    """

    def __init__(
        self,
        sink: FrameSink,
        enhancer: FrameFilter | None = None,
        border_mode: int = cv2.BORDER_CONSTANT,
    ):
        self.sink = sink
        self.enhancer = enhancer
        self.border_mode = border_mode
        self.frames_written = 0

    def warp(self, frame: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        return cv2.warpAffine(frame, matrix, (w, h), borderMode=self.border_mode)

    def render(self, frame: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        """Warp, enhance and write one frame; returns what was written."""
        return self._emit(self.warp(frame, matrix))

    def passthrough(self, frame: np.ndarray) -> np.ndarray:
        """Enhance and write a frame without warping it."""
        return self._emit(frame)

    def _emit(self, frame: np.ndarray) -> np.ndarray:
        if self.enhancer is not None:
            frame = self.enhancer.apply(frame)
        self.sink.write(frame)
        self.frames_written += 1
        return frame
