#!/usr/bin/env python3
"""
Example: steadycam API Usage
============================

Stabilizes a clip three ways and shows the lower-level pieces the
entry points are built from.

    python examples/stabilize_clip.py shaky.mp4
"""

import logging
import sys
from pathlib import Path

from steadycam import get_preset, stabilize, track
from steadycam.core.video import VideoReader
from steadycam.pipeline import StabilizationPipeline


logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

input_video = Path(sys.argv[1] if len(sys.argv) > 1 else "shaky.mp4")
stem = input_video.with_suffix("")


# =============================================================================
# 1. ONE-CALL ENTRY POINTS
# =============================================================================

# Light stabilization with the default codec chain
result = stabilize(input_video, f"{stem}_light.mp4")
print("light:", result.ok, result.frames_written, result.codec)

# ORB matching, wide Gaussian window, bigger crop; tweak one setting
config = get_preset("gimbal")
config.smoothing.radius = 45
result = stabilize(input_video, f"{stem}_gimbal.mp4", config=config)
if not result:
    print(f"gimbal failed at {result.error.value}: {result.message}")

# Keep whatever sits at the frame center fixed on screen
result = track(input_video, f"{stem}_lock.mp4")
print("lock:", result.ok, result.frames_written)


# =============================================================================
# 2. ANALYSIS ONLY: INSPECT THE CAMERA PATH
# =============================================================================

pipeline = StabilizationPipeline(get_preset("light"))

with VideoReader(input_video) as reader:
    analysis = pipeline.analyze(reader)
    width, height = analysis.frame_size
    plan = pipeline.plan(analysis.estimates, width, height)

diff = plan.differences()
print(f"{analysis.frame_count} frames, {analysis.fallback_frames} with identity fallback")
print(f"largest correction: {abs(diff[:, 0]).max():.1f}px x, {abs(diff[:, 1]).max():.1f}px y")
