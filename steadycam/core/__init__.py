"""
Core module - Base protocols, configuration, video I/O and error types.
"""

from steadycam.core.base import FrameFilter, FilterChain, CancelFlag, is_cancelled
from steadycam.core.video import (
    VideoReader,
    VideoWriter,
    VideoProperties,
    FrameSource,
    FrameSink,
)
from steadycam.core.config import (
    DEFAULT_CODECS,
    StabilizerConfig,
    MotionConfig,
    SmoothingConfig,
    LockConfig,
    EnhanceConfig,
    SmoothingKernel,
    TrackingMode,
    PRESETS,
    get_preset,
    load_config,
    save_config,
    apply_env_overrides,
)
from steadycam.core.errors import (
    ErrorKind,
    SteadycamError,
    InputOpenError,
    CodecUnavailableError,
    DegenerateVideoError,
    TruncatedInputError,
    CancelledError,
    WriteError,
    StabilizeResult,
)

__all__ = [
    "FrameFilter",
    "FilterChain",
    "CancelFlag",
    "is_cancelled",
    "VideoReader",
    "VideoWriter",
    "VideoProperties",
    "FrameSource",
    "FrameSink",
    "DEFAULT_CODECS",
    "StabilizerConfig",
    "MotionConfig",
    "SmoothingConfig",
    "LockConfig",
    "EnhanceConfig",
    "SmoothingKernel",
    "TrackingMode",
    "PRESETS",
    "get_preset",
    "load_config",
    "save_config",
    "apply_env_overrides",
    "ErrorKind",
    "SteadycamError",
    "InputOpenError",
    "CodecUnavailableError",
    "DegenerateVideoError",
    "TruncatedInputError",
    "CancelledError",
    "WriteError",
    "StabilizeResult",
]
