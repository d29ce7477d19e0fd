"""
Tone and contrast enhancement for stabilized frames and still images.

This module provides LUT generation, luminance CLAHE and automatic gamma,
wrapped as FrameFilter objects so they can be chained after warping.
"""

import math
from dataclasses import dataclass
from pathlib import Path
import logging

import cv2
import numpy as np

from steadycam.core.base import FilterChain
from steadycam.core.config import EnhanceConfig
from steadycam.core.errors import ErrorKind, StabilizeResult

logger = logging.getLogger(__name__)


def create_gamma_lut(gamma: float) -> np.ndarray:
    """
    Create a gamma correction lookup table.

    Args:
        gamma: Gamma value (>1 darkens, <1 brightens)

    Returns:
        3-channel LUT for use with cv2.LUT()
    """
    identity = np.arange(256, dtype=np.float32) / 255.0
    table = np.clip(np.power(identity, gamma) * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return np.dstack((table, table, table))


def apply_lut(frame: np.ndarray, lut: np.ndarray) -> np.ndarray:
    """
    Apply a LUT to a frame with automatic channel handling.

    Args:
        frame: Input frame (uint8, 1 or 3 channels)
        lut: Lookup table from create_gamma_lut

    Returns:
        Processed frame in same format as input
    """
    if frame.ndim == 2:
        return cv2.LUT(frame, lut[:, :, 0])
    return cv2.LUT(frame, lut)


def create_clahe(
    clip_limit: float = 2.0,
    grid_size: int = 8,
) -> cv2.CLAHE:
    """
    Create a CLAHE (Contrast Limited Adaptive Histogram Equalization) object.

    Args:
        clip_limit: Threshold for contrast limiting
        grid_size: Size of grid for histogram equalization

    Returns:
        OpenCV CLAHE object
    """
    return cv2.createCLAHE(
        clipLimit=clip_limit,
        tileGridSize=(grid_size, grid_size)
    )


def apply_clahe_luminance(
    frame: np.ndarray,
    clip_limit: float = 2.0,
    grid_size: int = 8,
) -> np.ndarray:
    """
    Apply CLAHE to the lightness channel only.

    Equalizing L in Lab space lifts local contrast without shifting hues.

    Args:
        frame: BGR (or grayscale) uint8 frame
        clip_limit: CLAHE clip limit
        grid_size: CLAHE grid size

    Returns:
        Enhanced frame, same shape as input
    """
    clahe = create_clahe(clip_limit, grid_size)
    if frame.ndim == 2:
        return clahe.apply(frame)

    lab = cv2.cvtColor(frame, cv2.COLOR_BGR2Lab)
    l_chan, a_chan, b_chan = cv2.split(lab)
    l_chan = clahe.apply(l_chan)
    return cv2.cvtColor(cv2.merge((l_chan, a_chan, b_chan)), cv2.COLOR_Lab2BGR)


def auto_gamma(frame: np.ndarray, low: float = 0.8, high: float = 1.2) -> float:
    """
    Gamma that maps the frame's mean brightness toward mid grey.

    Args:
        frame: uint8 frame
        low: Lower clamp
        high: Upper clamp

    Returns:
        Gamma in [low, high], or 1.0 for fully black or white frames
    """
    brightness = float(np.mean(frame))
    if brightness <= 0 or brightness >= 255:
        return 1.0
    gamma = math.log(0.5) / math.log(brightness / 255.0)
    return max(low, min(gamma, high))


@dataclass
class GammaFilter:
    """Frame filter that applies a fixed gamma correction."""
    gamma: float = 1.0

    def __post_init__(self):
        self._lut = create_gamma_lut(self.gamma)

    def apply(self, frame: np.ndarray) -> np.ndarray:
        return apply_lut(frame, self._lut)


@dataclass
class AutoGammaFilter:
    """Frame filter that picks a gamma per frame from its brightness."""
    low: float = 0.8
    high: float = 1.2
    tolerance: float = 0.05

    def apply(self, frame: np.ndarray) -> np.ndarray:
        gamma = auto_gamma(frame, self.low, self.high)
        if abs(gamma - 1.0) <= self.tolerance:
            return frame
        return apply_lut(frame, create_gamma_lut(gamma))


@dataclass
class LuminanceCLAHEFilter:
    """Frame filter that applies CLAHE on luminance."""
    clip_limit: float = 2.0
    grid_size: int = 8

    def apply(self, frame: np.ndarray) -> np.ndarray:
        return apply_clahe_luminance(frame, self.clip_limit, self.grid_size)


@dataclass
class DenoiseFilter:
    """Non-local means colour denoising (slow; meant for still images)."""
    strength: float = 10.0
    color_strength: float = 10.0

    def apply(self, frame: np.ndarray) -> np.ndarray:
        return cv2.fastNlMeansDenoisingColored(
            frame, None, self.strength, self.color_strength, 7, 21
        )


@dataclass
class DetailFilter:
    """Edge-preserving detail boost."""
    sigma_s: float = 10.0
    sigma_r: float = 0.15

    def apply(self, frame: np.ndarray) -> np.ndarray:
        return cv2.detailEnhance(frame, sigma_s=self.sigma_s, sigma_r=self.sigma_r)


def build_enhancer(config: EnhanceConfig) -> FilterChain | None:
    """
    Build the post-warp enhancement chain.

    Returns:
        FilterChain, or None when enhancement is disabled
    """
    if not config.enabled:
        return None

    chain = FilterChain()
    chain.add(LuminanceCLAHEFilter(config.clip_limit, config.grid_size))
    if config.auto_gamma:
        chain.add(AutoGammaFilter(config.gamma_low, config.gamma_high))
    return chain


def enhance_image(
    path: str | Path,
    output_path: str | Path | None = None,
    config: EnhanceConfig | None = None,
    denoise: bool = False,
    detail: bool = False,
) -> StabilizeResult:
    """
    Enhance a single still image.

    Runs optional denoise and detail boost, then luminance CLAHE and auto
    gamma. Overwrites the input unless ``output_path`` is given.

    Args:
        path: Image to read
        output_path: Where to write (default: overwrite ``path``)
        config: Enhancement settings (enabled flag is ignored here)
        denoise: Apply non-local means denoising first
        detail: Apply detail enhancement

    Returns:
        StabilizeResult describing the outcome
    """
    config = config or EnhanceConfig()
    path = Path(path)
    output_path = Path(output_path) if output_path else path

    image = cv2.imread(str(path))
    if image is None:
        logger.error("Failed to load image: %s", path)
        return StabilizeResult.failure(ErrorKind.BAD_INPUT, f"Failed to load image: {path}")

    chain = FilterChain()
    if denoise:
        chain.add(DenoiseFilter())
    if detail:
        chain.add(DetailFilter())
    chain.add(LuminanceCLAHEFilter(config.clip_limit, config.grid_size))
    chain.add(AutoGammaFilter(config.gamma_low, config.gamma_high))

    result = chain.apply(image)

    if not cv2.imwrite(str(output_path), result):
        logger.error("Failed to save processed image: %s", output_path)
        return StabilizeResult.failure(
            ErrorKind.WRITE_FAILED, f"Failed to save processed image: {output_path}"
        )

    logger.info("Saved enhanced image %s", output_path)
    return StabilizeResult.success(output_path, frames_written=1)
