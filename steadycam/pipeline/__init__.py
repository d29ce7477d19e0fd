"""
Pipeline module - Rendering and the stabilize / track entry points.

This module provides:
- StabilizationPipeline: one pipeline for every stabilization variant
- FrameRenderer: single-warp rendering with post-warp enhancement
- stabilize / track: file-to-file entry points returning a StabilizeResult
"""

from steadycam.pipeline.renderer import FrameRenderer
from steadycam.pipeline.stabilize import (
    AnalysisResult,
    StabilizationPipeline,
    stabilize,
    track,
)

__all__ = [
    "FrameRenderer",
    "AnalysisResult",
    "StabilizationPipeline",
    "stabilize",
    "track",
]
