"""
steadycam - Video stabilization toolkit
=======================================

Turns a jittery camera path into a smooth one and renders the corrected
frames into a new video, or locks onto a tracked subject instead.

Main modules:
- steadycam.tracking: Motion observation, trajectory smoothing, object lock
- steadycam.pipeline: Two-pass stabilization and the entry points
- steadycam.processing: Post-warp and still-image enhancement
- steadycam.core: Configuration, video I/O, error types

Presets:
    light   Optical-flow stabilization, uniform window, light 1.05 crop
    smart   light + luminance CLAHE and auto gamma
    gimbal  ORB matching, wide Gaussian window, 1.35 crop
    lock    Object-lock on the subject at the frame center

Quick start:
    >>> import steadycam
    >>> result = steadycam.stabilize("shaky.mp4", "steady.mp4", preset="gimbal")
    >>> result.ok, result.frames_written, result.codec
"""

__version__ = "0.1.0"

# Convenience imports
from steadycam.core.config import StabilizerConfig, get_preset, load_config
from steadycam.core.errors import ErrorKind, StabilizeResult
from steadycam.pipeline import StabilizationPipeline, stabilize, track
from steadycam.processing import enhance_image

__all__ = [
    "__version__",
    "StabilizerConfig",
    "get_preset",
    "load_config",
    "ErrorKind",
    "StabilizeResult",
    "StabilizationPipeline",
    "stabilize",
    "track",
    "enhance_image",
]
