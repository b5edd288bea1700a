"""
Level-of-detail management for the interactive preview.

Two pipelines exist side by side: the full-resolution one used for export,
built once, and a screen-matched downscaled one for preview, rebuilt only when
the on-screen size changes meaningfully. Rebuilds replace the preview snapshot
with a new immutable value; renders already holding the old one are unaffected.
"""

import numpy as np
from typing import Optional

from utils.logger_config import get_logger

from ..compositing.filters import scale_uniform
from ..compositing.overscan_builder import build_overscan
from ..data_types import DepthField, PreviewSnapshot
from ..errors import InvalidGeometryError
from ..settings import LodSettings, ParallaxTuning


class LevelOfDetailManager:
    """Owns the full-resolution and preview (OverscannedSource, DepthField, size) triples."""

    def __init__(
        self,
        image: np.ndarray,
        depth: DepthField,
        tuning: Optional[ParallaxTuning] = None,
        settings: Optional[LodSettings] = None,
        full_snapshot: Optional[PreviewSnapshot] = None
    ):
        """
        Build the full-resolution pipeline and the initial preview LOD.

        Args:
            image: Decoded source photo
            depth: Depth field with the same pixel size as ``image``
            tuning: Compositor tuning (travel/overscan)
            settings: LOD quantisation and hysteresis
            full_snapshot: Already built full-resolution snapshot to reuse
        """
        self.tuning = tuning or ParallaxTuning()
        self.settings = settings or LodSettings()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        height, width = image.shape[:2]
        if depth.size != (width, height):
            raise InvalidGeometryError(f"Depth size {depth.size} does not match image {width}x{height}")

        self._image = image
        self._depth = depth
        self.output_size = (width, height)

        if full_snapshot is None:
            full_snapshot = self._build_snapshot(image, depth)
        self._full = full_snapshot

        self.target_longest = float(self.settings.preview_target_longest)
        self.preview_scale = None
        self._preview: Optional[PreviewSnapshot] = None
        self._rebuild(self.target_longest)

    @property
    def long_edge(self) -> int:
        return max(self.output_size)

    def full_snapshot(self) -> PreviewSnapshot:
        """Full-resolution (export) pipeline; never resized."""
        return self._full

    def current_snapshot(self) -> PreviewSnapshot:
        """Active preview pipeline."""
        return self._preview

    def quantize(self, longest_edge_px: float) -> float:
        """Snap a requested size to the coarse LOD grid."""
        quantum = self.settings.quantum
        return float(max(self.settings.min_longest, round(longest_edge_px / quantum) * quantum))

    def update_target_resolution(self, longest_edge_px: float) -> bool:
        """
        Follow the on-screen preview size.

        Args:
            longest_edge_px: Longest edge of the display surface in pixels

        Returns:
            bool: True if a new preview snapshot was built
        """
        quantized = self.quantize(longest_edge_px)
        if abs(quantized - self.target_longest) <= self.settings.hysteresis_px:
            return False

        self.target_longest = quantized
        return self._rebuild(quantized)

    def _rebuild(self, target_longest: float) -> bool:
        new_scale = min(1.0, target_longest / float(self.long_edge))
        if (self._preview is not None and self.preview_scale is not None
                and abs(new_scale - self.preview_scale) < self.settings.scale_hysteresis):
            return False

        if new_scale >= 1.0:
            snapshot = self._full
        else:
            scaled_image = scale_uniform(self._image, new_scale)
            scaled_h, scaled_w = scaled_image.shape[:2]
            scaled_depth = self._depth.resized((scaled_w, scaled_h))
            snapshot = self._build_snapshot(scaled_image, scaled_depth)

        # Single reference swap; readers keep whichever snapshot they took
        self.preview_scale = new_scale
        self._preview = snapshot

        width, height = snapshot.size
        self.logger.info(f"Preview LOD rebuilt: target={target_longest:.0f}px, "
                         f"scale={new_scale:.3f}, size={width}x{height}")
        return True

    def _build_snapshot(self, image: np.ndarray, depth: DepthField) -> PreviewSnapshot:
        source = build_overscan(image, self.tuning.travel_fraction, self.tuning.overscan_safety)
        return PreviewSnapshot(
            source=source,
            depth=depth,
            size=source.output_size,
            tuning=self.tuning,
            depth_range=depth.range_info,
        )

    def get_lod_info(self):
        """Summary of the current LOD state for logging and reports."""
        return {
            'output_size': list(self.output_size),
            'preview_size': list(self._preview.size) if self._preview else None,
            'preview_scale': self.preview_scale,
            'target_longest': self.target_longest,
        }
