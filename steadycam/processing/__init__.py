"""
Processing module - Frame and still-image enhancement.

This module provides:
- LuminanceCLAHEFilter / AutoGammaFilter: post-warp tone enhancement
- DenoiseFilter / DetailFilter: heavier filters for still images
- build_enhancer: enhancement chain from an EnhanceConfig
- enhance_image: one-shot still image enhancement
"""

from steadycam.processing.color import (
    create_gamma_lut,
    apply_lut,
    create_clahe,
    apply_clahe_luminance,
    auto_gamma,
    GammaFilter,
    AutoGammaFilter,
    LuminanceCLAHEFilter,
    DenoiseFilter,
    DetailFilter,
    build_enhancer,
    enhance_image,
)

__all__ = [
    "create_gamma_lut",
    "apply_lut",
    "create_clahe",
    "apply_clahe_luminance",
    "auto_gamma",
    "GammaFilter",
    "AutoGammaFilter",
    "LuminanceCLAHEFilter",
    "DenoiseFilter",
    "DetailFilter",
    "build_enhancer",
    "enhance_image",
]
