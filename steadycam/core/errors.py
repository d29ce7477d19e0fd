"""
Error types and the structured result returned by the entry points.

Setup failures are raised as ``SteadycamError`` subclasses inside the
pipeline and converted to a ``StabilizeResult`` at the public boundary, so
callers can tell "bad input" from "no usable codec" without parsing logs.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ErrorKind(Enum):
    """Which stage of a run failed."""
    BAD_INPUT = "bad_input"
    NO_CODEC = "no_codec"
    DEGENERATE_VIDEO = "degenerate_video"
    TRUNCATED_INPUT = "truncated_input"
    CANCELLED = "cancelled"
    WRITE_FAILED = "write_failed"


class SteadycamError(Exception):
    """Base class for run-aborting errors."""
    kind: ErrorKind = ErrorKind.BAD_INPUT


class InputOpenError(SteadycamError):
    """The input could not be opened or decoded."""
    kind = ErrorKind.BAD_INPUT


class CodecUnavailableError(SteadycamError):
    """None of the codec candidates could open an output stream."""
    kind = ErrorKind.NO_CODEC

    def __init__(self, attempted: list[str]):
        self.attempted = list(attempted)
        super().__init__(
            f"No output codec could be opened (tried: {', '.join(self.attempted) or 'none'})"
        )


class DegenerateVideoError(SteadycamError):
    """The input opened but yielded no usable first frame."""
    kind = ErrorKind.DEGENERATE_VIDEO


class TruncatedInputError(SteadycamError):
    """The input delivered fewer frames on the render pass than were analyzed."""
    kind = ErrorKind.TRUNCATED_INPUT


class CancelledError(SteadycamError):
    """The caller asked the run to stop."""
    kind = ErrorKind.CANCELLED


class WriteError(SteadycamError):
    """Writing the output failed mid-run."""
    kind = ErrorKind.WRITE_FAILED


@dataclass
class StabilizeResult:
    """
    Outcome of a stabilize/track/enhance call.

    Attributes:
        ok: True when a complete output was written
        output_path: Path of the written output (None on failure)
        error: Failure stage, None on success
        message: Human readable detail
        frames_written: Number of frames written to the output
        codec: Codec identifier the writer settled on
        fallback_frames: Frames whose motion fell back to identity
    """
    ok: bool
    output_path: Path | None = None
    error: ErrorKind | None = None
    message: str = ""
    frames_written: int = 0
    codec: str | None = None
    fallback_frames: int = 0

    @classmethod
    def success(
        cls,
        output_path: str | Path | None,
        frames_written: int = 0,
        codec: str | None = None,
        fallback_frames: int = 0,
        message: str = "",
    ) -> "StabilizeResult":
        return cls(
            ok=True,
            output_path=Path(output_path) if output_path is not None else None,
            frames_written=frames_written,
            codec=codec,
            fallback_frames=fallback_frames,
            message=message,
        )

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "StabilizeResult":
        return cls(ok=False, error=kind, message=message)

    @classmethod
    def from_error(cls, error: SteadycamError) -> "StabilizeResult":
        return cls.failure(error.kind, str(error))

    def __bool__(self) -> bool:
        return self.ok
