"""
The stabilization pipeline and its entry points.

One pipeline covers every variant; the configuration picks the motion
observation strategy, smoothing kernel, zoom and tracking mode.

Full-path mode makes two passes over the source:
1. Analysis - observe motion between consecutive frames
2. Render - rewind, warp each frame onto the smoothed path, write

Object-lock mode makes a single pass, tracking a subject and shifting each
frame so the subject stays where it started.

Example:
    >>> from steadycam.pipeline import stabilize
    >>> result = stabilize("shaky.mp4", "steady.mp4", preset="gimbal")
    >>> if not result:
    ...     print(result.error, result.message)
"""

from dataclasses import dataclass, field
from pathlib import Path
import logging

import cv2
import numpy as np

from steadycam.core.base import CancelFlag, FrameFilter, is_cancelled
from steadycam.core.config import StabilizerConfig, TrackingMode, get_preset
from steadycam.core.errors import (
    CancelledError,
    DegenerateVideoError,
    InputOpenError,
    StabilizeResult,
    SteadycamError,
    TruncatedInputError,
    WriteError,
)
from steadycam.core.video import FrameSink, FrameSource, VideoReader, VideoWriter
from steadycam.pipeline.renderer import FrameRenderer
from steadycam.processing.color import build_enhancer
from steadycam.tracking.compensation import StabilizationPlan, compose, zoom_matrix
from steadycam.tracking.motion import (
    MotionEstimate,
    MotionObserver,
    Observation,
    make_observer,
)
from steadycam.tracking.tracker import ObjectLockTracker
from steadycam.tracking.trajectory import accumulate_trajectory, smooth_trajectory

logger = logging.getLogger(__name__)


def _to_gray(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return frame


@dataclass
class AnalysisResult:
    """
    Pass-1 output.

    Attributes:
        estimates: One estimate per analyzed frame, identity first
        observations: One observation per consecutive frame pair
        frame_size: (width, height) of the decoded frames
    """
    estimates: list[MotionEstimate] = field(default_factory=list)
    observations: list[Observation] = field(default_factory=list)
    frame_size: tuple[int, int] = (0, 0)

    @property
    def frame_count(self) -> int:
        return len(self.estimates)

    @property
    def fallback_frames(self) -> int:
        return sum(1 for obs in self.observations if obs.is_fallback)


class StabilizationPipeline:
    """
    Stabilizes a video according to a StabilizerConfig.

    Attributes:
        config: Validated configuration
        observer: Motion observer used in full-path mode
        enhancer: Optional post-warp filter (chain)

    Example:
        >>> pipeline = StabilizationPipeline(get_preset("light"))
        >>> result = pipeline.run("in.mp4", "out.mp4")
    """

    def __init__(
        self,
        config: StabilizerConfig | None = None,
        observer: MotionObserver | None = None,
        enhancer: FrameFilter | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Configuration (default: the "light" settings)
            observer: Override the observer built from config.motion
            enhancer: Override the enhancer built from config.enhance

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = (config or StabilizerConfig()).validate()
        self.observer = observer or make_observer(self.config.motion)
        self.enhancer = enhancer if enhancer is not None else build_enhancer(self.config.enhance)

    def _log_progress(self, stage: str, index: int, total: int) -> None:
        interval = self.config.log_interval
        if interval > 0 and index % interval == 0:
            logger.info("%s frame %d/%s", stage, index, total if total > 0 else "?")

    def analyze(self, source: FrameSource, cancel: CancelFlag | None = None) -> AnalysisResult:
        """
        Pass 1: estimate motion for every consecutive frame pair.

        Reading stops at the first failed read, whatever the advertised
        frame count says.

        Raises:
            DegenerateVideoError: If the first frame cannot be read
            CancelledError: If ``cancel`` is set
        """
        frame = source.read()
        if frame is None:
            raise DegenerateVideoError("First frame is empty")

        total = source.properties.frame_count
        result = AnalysisResult(
            estimates=[MotionEstimate.identity()],
            frame_size=(frame.shape[1], frame.shape[0]),
        )
        prev_gray = _to_gray(frame)

        while True:
            if is_cancelled(cancel):
                raise CancelledError("Cancelled during analysis")

            frame = source.read()
            if frame is None:
                break

            curr_gray = _to_gray(frame)
            observation = self.observer.observe(prev_gray, curr_gray)
            if observation.is_fallback:
                logger.debug(
                    "Frame %d: %s, using identity motion",
                    len(result.estimates), observation.status.value,
                )
            result.observations.append(observation)
            result.estimates.append(observation.estimate)
            prev_gray = curr_gray

            self._log_progress("Analyzing", len(result.estimates) - 1, total)

        logger.info(
            "Analyzed %d frames (%d with identity fallback)",
            result.frame_count, result.fallback_frames,
        )
        return result

    def plan(
        self,
        estimates: list[MotionEstimate],
        width: int,
        height: int,
    ) -> StabilizationPlan:
        """Accumulate and smooth the path into per-frame transforms."""
        smoothing = self.config.smoothing
        trajectory = accumulate_trajectory(estimates)
        smoothed = smooth_trajectory(
            trajectory, smoothing.radius, smoothing.kernel, smoothing.sigma_divisor
        )
        return StabilizationPlan(trajectory, smoothed, width, height, self.config.zoom)

    def _process_full_path(
        self,
        source: FrameSource,
        renderer: FrameRenderer,
        cancel: CancelFlag | None,
    ) -> int:
        analysis = self.analyze(source, cancel)
        width, height = analysis.frame_size
        plan = self.plan(analysis.estimates, width, height)

        try:
            source.rewind()
        except RuntimeError as exc:
            raise InputOpenError(f"Could not rewind input for rendering: {exc}") from exc

        for index in range(len(plan)):
            if is_cancelled(cancel):
                raise CancelledError("Cancelled during render")

            frame = source.read()
            if frame is None:
                raise TruncatedInputError(
                    f"Stream ended at frame {index} of {len(plan)} analyzed frames"
                )

            renderer.render(frame, plan.transform(index))
            self._log_progress("Writing", index, len(plan))

        return analysis.fallback_frames

    def _process_object_lock(
        self,
        source: FrameSource,
        renderer: FrameRenderer,
        cancel: CancelFlag | None,
    ) -> int:
        frame = source.read()
        if frame is None:
            raise DegenerateVideoError("First frame is empty")

        total = source.properties.frame_count
        height, width = frame.shape[:2]
        zoom = None if self.config.zoom == 1.0 else zoom_matrix(width, height, self.config.zoom)

        tracker = ObjectLockTracker.from_config(self.config.lock)
        tracker.initialize(frame)
        renderer.passthrough(frame)

        lost_frames = 0
        index = 0
        while True:
            if is_cancelled(cancel):
                raise CancelledError("Cancelled during tracking")

            frame = source.read()
            if frame is None:
                break
            index += 1

            stats = tracker.update(frame)
            if stats.tracked == 0:
                lost_frames += 1
            renderer.render(frame, compose(tracker.compensation(), zoom))
            self._log_progress("Tracking", index, total)

        logger.info(
            "Tracked %d frames, %d re-seeds, %d frames without live points",
            tracker.frame_count, tracker.reseed_count, lost_frames,
        )
        return lost_frames

    def process(
        self,
        source: FrameSource,
        sink: FrameSink,
        cancel: CancelFlag | None = None,
        output_path: str | Path | None = None,
    ) -> StabilizeResult:
        """
        Run the configured mode from an opened source into an unopened sink.

        The sink is opened first (codec negotiation). On any failure the
        partial output is discarded, so a run leaves either a complete
        file or none. Unexpected exceptions are re-raised after the discard.

        Returns:
            StabilizeResult
        """
        output_path = output_path or getattr(sink, "path", None)
        renderer = FrameRenderer(sink, self.enhancer)

        try:
            sink.open()
            if self.config.mode is TrackingMode.OBJECT_LOCK:
                fallback_frames = self._process_object_lock(source, renderer, cancel)
            else:
                fallback_frames = self._process_full_path(source, renderer, cancel)
        except SteadycamError as exc:
            sink.discard()
            log = logger.warning if isinstance(exc, CancelledError) else logger.error
            log("Stabilization failed (%s): %s", exc.kind.value, exc)
            return StabilizeResult.from_error(exc)
        except (cv2.error, OSError) as exc:
            sink.discard()
            logger.error("Writing output failed: %s", exc)
            return StabilizeResult.from_error(WriteError(str(exc)))
        except BaseException:
            sink.discard()
            raise

        sink.close()
        logger.info(
            "Stabilization completed: %d frames written with %s",
            renderer.frames_written, sink.codec,
        )
        return StabilizeResult.success(
            output_path,
            frames_written=renderer.frames_written,
            codec=sink.codec,
            fallback_frames=fallback_frames,
        )

    def run(
        self,
        input_path: str | Path,
        output_path: str | Path,
        cancel: CancelFlag | None = None,
    ) -> StabilizeResult:
        """
        Stabilize a video file into a new video file.

        Never raises for bad input, missing codecs, degenerate or truncated
        videos, or cancellation; inspect the returned result instead.
        """
        logger.info("Starting video stabilization: %s", input_path)
        reader = VideoReader(input_path)
        try:
            reader.open()
        except (FileNotFoundError, RuntimeError) as exc:
            logger.error("Failed to open input video: %s", exc)
            return StabilizeResult.from_error(InputOpenError(str(exc)))

        with reader:
            props = reader.properties
            logger.info(
                "Video info: %dx%d @ %.2f fps, %d frames",
                props.width, props.height, props.fps, props.frame_count,
            )
            writer = VideoWriter(output_path, props, codecs=self.config.codecs)
            return self.process(reader, writer, cancel, output_path)


def _resolve_config(
    config: StabilizerConfig | None,
    preset: str | None,
    default_preset: str,
) -> StabilizerConfig:
    if config is not None:
        return config
    return get_preset(preset or default_preset)


def stabilize(
    input_path: str | Path,
    output_path: str | Path,
    config: StabilizerConfig | None = None,
    preset: str | None = None,
    cancel: CancelFlag | None = None,
) -> StabilizeResult:
    """
    Stabilize ``input_path`` into ``output_path``.

    Args:
        input_path: Video to read
        output_path: Video to write
        config: Full configuration (takes precedence over ``preset``)
        preset: Preset name when no config is given (default: "light")
        cancel: Optional flag checked once per frame

    Returns:
        StabilizeResult; ``result.error`` names the failed stage

    Frames are written to a ``.partial`` file beside ``output_path`` that
    only replaces it once the run completes, so an existing file at
    ``output_path`` survives a failed or cancelled run.
    """
    config = _resolve_config(config, preset, "light")
    return StabilizationPipeline(config).run(input_path, output_path, cancel)


def track(
    input_path: str | Path,
    output_path: str | Path,
    config: StabilizerConfig | None = None,
    preset: str | None = None,
    cancel: CancelFlag | None = None,
) -> StabilizeResult:
    """
    Object-lock variant of ``stabilize``: keep the subject at the frame
    center fixed on screen.

    Whatever configuration is given runs in object-lock mode.
    """
    config = _resolve_config(config, preset, "lock")
    if config.mode is not TrackingMode.OBJECT_LOCK:
        config = config.replace(mode=TrackingMode.OBJECT_LOCK)
    return StabilizationPipeline(config).run(input_path, output_path, cancel)
