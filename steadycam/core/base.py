"""
Base protocols shared across the steadycam package.

This module defines the small structural contracts the pipeline relies on:
frame filters applied after warping, and the cooperative cancellation flag
checked once per processed frame.
"""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class FrameFilter(Protocol):
    """Protocol for simple frame filters that return a transformed frame."""

    def apply(self, frame: np.ndarray) -> np.ndarray:
        """Apply the filter to a frame."""
        ...


@runtime_checkable
class CancelFlag(Protocol):
    """Anything with an ``is_set()`` method, e.g. ``threading.Event``."""

    def is_set(self) -> bool:
        ...


def is_cancelled(flag: CancelFlag | None) -> bool:
    """Return True when a cancel flag was given and has been set."""
    return flag is not None and flag.is_set()


class FilterChain:
    """
    A chain of frame filters that can be applied in sequence.

    Example:
        chain = FilterChain()
        chain.add(LuminanceCLAHEFilter(clip_limit=2.0))
        chain.add(AutoGammaFilter())

        enhanced = chain.apply(frame)
    """

    def __init__(self, filters: list[FrameFilter] | None = None):
        self.filters = filters or []

    def add(self, filter_: FrameFilter) -> "FilterChain":
        """Add a filter to the chain."""
        self.filters.append(filter_)
        return self

    def apply(self, frame: np.ndarray) -> np.ndarray:
        """Apply all filters in sequence."""
        result = frame
        for f in self.filters:
            result = f.apply(result)
        return result

    def __len__(self) -> int:
        return len(self.filters)

    def __repr__(self) -> str:
        names = ", ".join(type(f).__name__ for f in self.filters)
        return f"FilterChain([{names}])"
