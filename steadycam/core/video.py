"""
Video I/O utilities for steadycam.

Provides the reader and writer the stabilization pipeline consumes:
- VideoReader: sequential decoding with an explicit end-of-stream signal
  and a rewind between the analysis and render passes
- VideoWriter: encoding with a prioritized codec fallback chain and
  even-dimension normalization

The pipeline only depends on the FrameSource / FrameSink protocols, so any
object with the same shape (e.g. an in-memory frame list in tests) works.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol
import logging

import cv2
import numpy as np

from steadycam.core.config import DEFAULT_CODECS
from steadycam.core.errors import CodecUnavailableError

logger = logging.getLogger(__name__)

FALLBACK_FPS = 30.0


@dataclass
class VideoProperties:
    """Properties of a video stream."""
    width: int
    height: int
    fps: float
    frame_count: int

    @classmethod
    def from_capture(cls, cap: cv2.VideoCapture) -> "VideoProperties":
        """Create VideoProperties from an OpenCV VideoCapture."""
        return cls(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=max(0, int(cap.get(cv2.CAP_PROP_FRAME_COUNT))),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
        }

    def even(self) -> "VideoProperties":
        """Return a copy with width and height rounded down to even values."""
        return replace(
            self,
            width=max(2, self.width - self.width % 2),
            height=max(2, self.height - self.height % 2),
        )

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) as OpenCV expects it."""
        return (self.width, self.height)

    @property
    def is_portrait(self) -> bool:
        """Check if video is in portrait orientation."""
        return self.height > self.width

    @property
    def aspect_ratio(self) -> float:
        """Get aspect ratio (width/height)."""
        return self.width / self.height if self.height > 0 else 0


class FrameSource(Protocol):
    """What the pipeline needs from an opened input stream."""

    @property
    def properties(self) -> VideoProperties: ...

    def read(self) -> np.ndarray | None: ...

    def rewind(self) -> None: ...


class FrameSink(Protocol):
    """What the pipeline needs from an output stream."""

    codec: str | None

    def open(self) -> Any: ...

    def write(self, frame: np.ndarray) -> None: ...

    def close(self) -> None: ...

    def discard(self) -> None: ...


class VideoReader:
    """
    Sequential video reader.

    ``read()`` returns None at the end of the stream; the advertised frame
    count is informational only since containers often report 0 or a wrong
    value.

    Example:
        with VideoReader("input.mp4") as reader:
            for index, frame in reader:
                process(frame)
            reader.rewind()
    """

    def __init__(self, path: str | Path):
        """
        Initialize the video reader.

        Args:
            path: Path to video file
        """
        self.path = Path(path)
        self._cap: cv2.VideoCapture | None = None
        self._props: VideoProperties | None = None

    def open(self) -> "VideoReader":
        """
        Open the video file.

        Raises:
            FileNotFoundError: If the file does not exist
            RuntimeError: If OpenCV cannot decode it
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Video file not found: {self.path}")

        self._cap = cv2.VideoCapture(str(self.path))
        if not self._cap.isOpened():
            self.close()
            raise RuntimeError(f"Failed to open video: {self.path}")

        self._props = VideoProperties.from_capture(self._cap)
        return self

    def close(self) -> None:
        """Close the video file."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    @property
    def properties(self) -> VideoProperties:
        """Get video properties."""
        if self._props is None:
            raise RuntimeError("Video not opened. Call open() first.")
        return self._props

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def read(self) -> np.ndarray | None:
        """Read the next frame, or None at end of stream."""
        if self._cap is None:
            raise RuntimeError("Video not opened. Call open() first.")
        ret, frame = self._cap.read()
        if not ret or frame is None or frame.size == 0:
            return None
        return frame

    def rewind(self) -> None:
        """
        Return to the first frame.

        Seeks when the backend supports it and reopens the capture
        otherwise. Calling it repeatedly leaves the reader at frame 0.
        """
        if self._cap is not None:
            if self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0) and \
                    int(self._cap.get(cv2.CAP_PROP_POS_FRAMES)) == 0:
                return
            logger.debug("Seek to start failed for %s, reopening", self.path)
        self.close()
        self.open()

    def __iter__(self) -> Iterator[tuple[int, np.ndarray]]:
        """Iterate over the remaining frames as (index, frame)."""
        if self._cap is None:
            self.open()

        index = 0
        while True:
            frame = self.read()
            if frame is None:
                break
            yield index, frame
            index += 1

    def __enter__(self) -> "VideoReader":
        if self._cap is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


WriterBackend = Callable[[str, int, float, tuple[int, int]], Any]


class VideoWriter:
    """
    Video writer with a prioritized codec fallback chain.

    Candidates are tried in order; the first one whose backend reports
    ``isOpened()`` wins and stays active for the rest of the run. Frame
    dimensions are forced even and any frame of a different size is
    resized before it is written.

    Frames go to a ``.partial`` file beside ``path``. ``close()`` moves it
    into place; ``discard()`` deletes it and leaves ``path`` untouched.

    Example:
        with VideoWriter("output.mp4", props) as writer:
            print(writer.codec)
            for frame in frames:
                writer.write(frame)
    """

    def __init__(
        self,
        path: str | Path,
        props: VideoProperties,
        codecs: tuple[str, ...] | list[str] = DEFAULT_CODECS,
        backend: WriterBackend | None = None,
    ):
        """
        Initialize the video writer.

        Args:
            path: Output video path
            props: Video properties (dimensions, fps)
            codecs: Ordered fourcc candidates
            backend: Factory with cv2.VideoWriter's signature (for testing)
        """
        self.path = Path(path)
        self.partial_path = self.path.with_name(f"{self.path.stem}.partial{self.path.suffix}")
        self.props = props.even()
        self.codecs = tuple(codecs)
        self._backend = backend or cv2.VideoWriter

        self.codec: str | None = None
        self.attempted: list[str] = []
        self.frames_written = 0
        self._writer: Any = None

    @property
    def size(self) -> tuple[int, int]:
        return self.props.size

    @property
    def fps(self) -> float:
        fps = self.props.fps
        return fps if fps and fps > 0 else FALLBACK_FPS

    def open(self) -> "VideoWriter":
        """
        Open the writer with the first codec that succeeds.

        Raises:
            CodecUnavailableError: If every candidate fails
        """
        for codec in self.codecs:
            self.attempted.append(codec)
            fourcc = cv2.VideoWriter_fourcc(*codec)
            writer = self._backend(str(self.partial_path), fourcc, self.fps, self.size)
            if writer.isOpened():
                self._writer = writer
                self.codec = codec
                logger.info(
                    "Opened output %s with codec %s at %dx%d @ %.2f fps",
                    self.path, codec, self.size[0], self.size[1], self.fps,
                )
                return self
            writer.release()
            logger.warning("Failed to open output video writer with %s", codec)

        raise CodecUnavailableError(self.attempted)

    def write(self, frame: np.ndarray) -> None:
        """Write a frame, resizing it to the writer size if needed."""
        if self._writer is None:
            raise RuntimeError("Writer not opened. Call open() first.")

        width, height = self.size
        if frame.shape[1] != width or frame.shape[0] != height:
            frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
        self._writer.write(frame)
        self.frames_written += 1

    def close(self) -> None:
        """Close the video writer and move the output into place."""
        if self._writer is not None:
            self._writer.release()
            self._writer = None
            if self.partial_path.exists():
                self.partial_path.replace(self.path)

    def discard(self) -> None:
        """Release the writer and delete whatever was written."""
        if self._writer is not None:
            self._writer.release()
            self._writer = None
        if self.partial_path.exists():
            self.partial_path.unlink()
            logger.info("Removed incomplete output %s", self.partial_path)

    def __enter__(self) -> "VideoWriter":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.close()
        else:
            self.discard()
        return False

