"""
Shared fixtures: synthetic textured footage and in-memory video endpoints.
"""

from pathlib import Path

import cv2
import numpy as np
import pytest

from steadycam.core.video import VideoProperties


def make_canvas(width: int = 640, height: int = 480, seed: int = 7) -> np.ndarray:
    """Blurred random noise: dense, trackable texture everywhere."""
    rng = np.random.default_rng(seed)
    noise = rng.integers(0, 256, size=(height, width), dtype=np.uint8)
    blurred = cv2.GaussianBlur(noise, (0, 0), 3)
    blurred = cv2.normalize(blurred, None, 0, 255, cv2.NORM_MINMAX)
    return cv2.cvtColor(blurred, cv2.COLOR_GRAY2BGR)


def pan_frames(
    count: int,
    step: tuple[int, int] = (2, 0),
    size: tuple[int, int] = (320, 240),
    origin: tuple[int, int] = (100, 100),
) -> list[np.ndarray]:
    """
    Crops of one canvas whose window moves ``step`` pixels per frame.

    Moving the window right by s makes the content move left by s, so the
    observed inter-frame motion is (-step[0], -step[1]).
    """
    width, height = size
    canvas = make_canvas()
    frames = []
    for i in range(count):
        x = origin[0] + step[0] * i
        y = origin[1] + step[1] * i
        frames.append(canvas[y:y + height, x:x + width].copy())
    return frames


class FrameListSource:
    """In-memory FrameSource over a list of frames."""

    def __init__(self, frames: list[np.ndarray], fps: float = 30.0):
        self.frames = frames
        self.position = 0
        self.rewinds = 0
        if frames:
            height, width = frames[0].shape[:2]
        else:
            height, width = 0, 0
        self._props = VideoProperties(width, height, fps, len(frames))

    @property
    def properties(self) -> VideoProperties:
        return self._props

    def read(self) -> np.ndarray | None:
        if self.position >= len(self.frames):
            return None
        frame = self.frames[self.position]
        self.position += 1
        return frame.copy()

    def rewind(self) -> None:
        self.position = 0
        self.rewinds += 1


class TruncatedRenderSource(FrameListSource):
    """Delivers every frame once, then only ``limit`` frames after a rewind."""

    def __init__(self, frames: list[np.ndarray], limit: int):
        super().__init__(frames)
        self.limit = limit

    def read(self) -> np.ndarray | None:
        if self.rewinds and self.position >= self.limit:
            return None
        return super().read()


class MemorySink:
    """In-memory FrameSink recording what happened to it."""

    def __init__(self, codec: str = "MJPG", fail_open: bool = False):
        self._codec = codec
        self.fail_open = fail_open
        self.codec: str | None = None
        self.frames: list[np.ndarray] = []
        self.opened = False
        self.closed = False
        self.discarded = False

    def open(self) -> "MemorySink":
        if self.fail_open:
            from steadycam.core.errors import CodecUnavailableError
            raise CodecUnavailableError([self._codec])
        self.opened = True
        self.codec = self._codec
        return self

    def write(self, frame: np.ndarray) -> None:
        if not self.opened:
            raise RuntimeError("write before open")
        self.frames.append(frame.copy())

    def close(self) -> None:
        self.closed = True

    def discard(self) -> None:
        self.discarded = True
        self.frames = []


class CountdownFlag:
    """Cancel flag that becomes set after ``checks`` calls to is_set()."""

    def __init__(self, checks: int):
        self.remaining = checks

    def is_set(self) -> bool:
        self.remaining -= 1
        return self.remaining < 0


class FakeBackend:
    """Stand-in for cv2.VideoWriter that only opens for accepted fourccs."""

    def __init__(self, accepted: set[int], path, fourcc, fps, size):
        self.path = path
        self.fourcc = fourcc
        self.fps = fps
        self.size = size
        self.opened = fourcc in accepted
        self.released = False
        self.frames: list[np.ndarray] = []
        if self.opened:
            Path(path).write_bytes(b"")

    def isOpened(self) -> bool:
        return self.opened

    def write(self, frame: np.ndarray) -> None:
        self.frames.append(frame)
        with open(self.path, "ab") as f:
            f.write(b"frame")

    def release(self) -> None:
        self.released = True


@pytest.fixture
def backend_factory():
    """
    Build a writer backend accepting only the given codecs.

    Returns (factory, created) where ``created`` lists every backend made.
    """
    def make(*accepted_codecs: str):
        accepted = {cv2.VideoWriter_fourcc(*c) for c in accepted_codecs}
        created: list[FakeBackend] = []

        def factory(path, fourcc, fps, size):
            backend = FakeBackend(accepted, path, fourcc, fps, size)
            created.append(backend)
            return backend

        return factory, created

    return make


@pytest.fixture
def canvas():
    return make_canvas()


@pytest.fixture
def static_frames():
    return pan_frames(20, step=(0, 0))


@pytest.fixture
def panning_frames():
    return pan_frames(20, step=(2, 0))
