"""
Configuration management for steadycam.

Every tunable the stabilizer exposes lives in a dataclass here. Configs can
be built from named presets, loaded from / saved to JSON files, and
overridden with ``STEADYCAM_*`` environment variables.
"""

import json
import os
from dataclasses import dataclass, field, asdict, replace as dc_replace
from enum import Enum
from pathlib import Path
from typing import Any


DEFAULT_CODECS: tuple[str, ...] = ("avc1", "H264", "mp4v", "MJPG")


class TrackingMode(Enum):
    """What the compensation anchors on."""
    FULL_PATH = "full_path"      # Smooth the whole camera trajectory
    OBJECT_LOCK = "object_lock"  # Keep a tracked subject fixed on screen


class SmoothingKernel(Enum):
    """Weighting used inside the smoothing window."""
    UNIFORM = "uniform"
    GAUSSIAN = "gaussian"


MOTION_METHODS = ("flow", "orb")


@dataclass
class MotionConfig:
    """Motion observation settings."""
    method: str = "flow"           # "flow" (Shi-Tomasi + LK) or "orb"
    max_features: int = 200
    quality_level: float = 0.01
    min_distance: int = 30
    min_correspondences: int = 5
    ransac_threshold: float = 3.0


@dataclass
class SmoothingConfig:
    """Trajectory smoothing settings."""
    radius: int = 30
    kernel: SmoothingKernel = SmoothingKernel.UNIFORM
    sigma_divisor: float = 2.5


@dataclass
class LockConfig:
    """Object-lock tracking settings."""
    roi_fraction: float = 0.5      # ROI size as a fraction of frame size
    max_features: int = 200
    quality_level: float = 0.01
    min_distance: int = 7
    reseed_threshold: int = 30     # Re-seed below this many live points
    reseed_interval: int = 30      # Periodic re-seed cadence, 0 disables


@dataclass
class EnhanceConfig:
    """Post-warp frame enhancement settings."""
    enabled: bool = False
    clip_limit: float = 2.0
    grid_size: int = 8
    auto_gamma: bool = True
    gamma_low: float = 0.8
    gamma_high: float = 1.2


@dataclass
class StabilizerConfig:
    """
    Main configuration container.

    Example:
        config = get_preset("gimbal").replace(zoom=1.2)
        config.smoothing.radius = 45
        result = stabilize("in.mp4", "out.mp4", config=config)
    """
    mode: TrackingMode = TrackingMode.FULL_PATH
    zoom: float = 1.05
    codecs: tuple[str, ...] = DEFAULT_CODECS
    log_interval: int = 30
    motion: MotionConfig = field(default_factory=MotionConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    enhance: EnhanceConfig = field(default_factory=EnhanceConfig)

    def validate(self) -> "StabilizerConfig":
        """
        Check value ranges.

        Raises:
            ValueError: If any setting is out of range
        """
        if self.zoom <= 0:
            raise ValueError(f"zoom must be positive, got {self.zoom}")
        if not self.codecs:
            raise ValueError("At least one codec candidate is required")
        if self.smoothing.radius < 0:
            raise ValueError(f"Smoothing radius must be >= 0, got {self.smoothing.radius}")
        if self.smoothing.sigma_divisor <= 0:
            raise ValueError("sigma_divisor must be positive")
        if self.motion.method not in MOTION_METHODS:
            raise ValueError(
                f"Unknown motion method: {self.motion.method}. Available: {list(MOTION_METHODS)}"
            )
        if self.motion.max_features <= 0 or self.lock.max_features <= 0:
            raise ValueError("max_features must be positive")
        if self.motion.min_correspondences < 1:
            raise ValueError("min_correspondences must be >= 1")
        if not 0 < self.lock.roi_fraction <= 1:
            raise ValueError("roi_fraction must be in (0, 1]")
        if self.lock.reseed_interval < 0:
            raise ValueError("reseed_interval must be >= 0")
        return self

    def replace(self, **changes: Any) -> "StabilizerConfig":
        """Return a copy with top-level fields replaced."""
        return dc_replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert configuration to a JSON-friendly dictionary."""
        return {
            "mode": self.mode.value,
            "zoom": self.zoom,
            "codecs": list(self.codecs),
            "log_interval": self.log_interval,
            "motion": asdict(self.motion),
            "smoothing": {
                "radius": self.smoothing.radius,
                "kernel": self.smoothing.kernel.value,
                "sigma_divisor": self.smoothing.sigma_divisor,
            },
            "lock": asdict(self.lock),
            "enhance": asdict(self.enhance),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StabilizerConfig":
        """Build a configuration from a dictionary, defaulting missing keys."""
        defaults = cls()

        sm_data = dict(data.get("smoothing", {}))
        if "kernel" in sm_data:
            sm_data["kernel"] = SmoothingKernel(sm_data["kernel"])

        config = cls(
            mode=TrackingMode(data.get("mode", defaults.mode.value)),
            zoom=float(data.get("zoom", defaults.zoom)),
            codecs=tuple(data.get("codecs", defaults.codecs)),
            log_interval=int(data.get("log_interval", defaults.log_interval)),
            motion=MotionConfig(**data.get("motion", {})),
            smoothing=SmoothingConfig(**sm_data),
            lock=LockConfig(**data.get("lock", {})),
            enhance=EnhanceConfig(**data.get("enhance", {})),
        )
        return config.validate()

    @classmethod
    def load(cls, path: str | Path) -> "StabilizerConfig":
        """Load configuration from a JSON file."""
        return load_config(path)

    def save(self, path: str | Path) -> None:
        """Save configuration to a JSON file."""
        save_config(self, path)


def _light() -> StabilizerConfig:
    return StabilizerConfig()


def _smart() -> StabilizerConfig:
    return StabilizerConfig(enhance=EnhanceConfig(enabled=True))


def _gimbal() -> StabilizerConfig:
    return StabilizerConfig(
        zoom=1.35,
        motion=MotionConfig(method="orb", max_features=3000, ransac_threshold=1.0),
        smoothing=SmoothingConfig(radius=60, kernel=SmoothingKernel.GAUSSIAN),
    )


def _lock() -> StabilizerConfig:
    return StabilizerConfig(
        mode=TrackingMode.OBJECT_LOCK,
        zoom=1.4,
        lock=LockConfig(reseed_threshold=30, reseed_interval=30),
    )


# Named variants: plain stabilization, "smart" enhancement, ORB-based
# "super gimbal" and subject lock.
PRESETS = {
    "light": _light,
    "smart": _smart,
    "gimbal": _gimbal,
    "lock": _lock,
}


def get_preset(name: str) -> StabilizerConfig:
    """
    Return a fresh configuration for a named preset.

    Raises:
        ValueError: If the preset name is unknown
    """
    key = name.lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(PRESETS)}")
    return PRESETS[key]()


def load_config(path: str | Path) -> StabilizerConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed StabilizerConfig object

    Raises:
        FileNotFoundError: If the config file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
        ValueError: If a value is out of range
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    return StabilizerConfig.from_dict(data)


def save_config(config: StabilizerConfig, path: str | Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: Configuration object to save
        path: Output path for the JSON file
    """
    path = Path(path)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


def get_env_config(prefix: str = "STEADYCAM_") -> dict[str, Any]:
    """
    Get configuration from environment variables.

    All environment variables starting with the prefix will be included.
    Variable names are converted to lowercase with the prefix removed.

    Example:
        STEADYCAM_ZOOM=1.2 -> {"zoom": "1.2"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            config[config_key] = value
    return config


def apply_env_overrides(
    config: StabilizerConfig,
    prefix: str = "STEADYCAM_",
) -> StabilizerConfig:
    """
    Apply the supported environment overrides to a configuration in place.

    Recognized keys: ZOOM, RADIUS, KERNEL, METHOD, CODECS (comma separated).
    """
    env = get_env_config(prefix)

    if "zoom" in env:
        config.zoom = float(env["zoom"])
    if "radius" in env:
        config.smoothing.radius = int(env["radius"])
    if "kernel" in env:
        config.smoothing.kernel = SmoothingKernel(env["kernel"].lower())
    if "method" in env:
        config.motion.method = env["method"].lower()
    if "codecs" in env:
        config.codecs = tuple(c.strip() for c in env["codecs"].split(",") if c.strip())

    return config.validate()
