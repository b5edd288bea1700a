"""
Subject-segmentation provider interface.

The pipeline never runs a segmentation model itself; it only consumes the
probability mask a provider returns. Providers may return ``None`` or raise,
and the depth synthesizer treats both as "no mask available".
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np


class SegmentationProvider(ABC):
    """Produces a foreground probability mask in [0, 1] for an image."""

    @abstractmethod
    def segment(self, image: np.ndarray) -> Optional[np.ndarray]:
        """
        Segment the subject of ``image``.

        Args:
            image: (H, W, C) float32 RGB(A) raster in [0, 1]

        Returns:
            Optional[np.ndarray]: (h, w) float mask in [0, 1] or uint8 mask
                in [0, 255] (any size), or None
        """


class NullSegmentationProvider(SegmentationProvider):
    """Provider for environments without a segmentation model."""

    def segment(self, image: np.ndarray) -> Optional[np.ndarray]:
        return None


class CallableSegmentationProvider(SegmentationProvider):
    """Adapts a plain function (e.g. a model's inference call) to the interface."""

    def __init__(self, segment_fn: Callable[[np.ndarray], Optional[np.ndarray]], name: str = "callable"):
        self._segment_fn = segment_fn
        self.name = name

    def segment(self, image: np.ndarray) -> Optional[np.ndarray]:
        return self._segment_fn(image)

    def __repr__(self) -> str:
        return f"CallableSegmentationProvider(name={self.name!r})"
