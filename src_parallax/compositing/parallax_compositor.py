"""
Depth-banded parallax compositor.

The depth range [0, 1] is split into equal bands. Each band is a rigid layer
that shifts with the viewpoint by an amount set by its depth: far bands move
with the gaze, near bands move against it and a little more (``near_exponent``).
Layers are blended far to near over an unshifted base so nearer content
occludes farther content at the band boundaries.
"""

import math
import cv2
import numpy as np
from typing import Iterator, Optional, Tuple

from utils.logger_config import get_logger

from ..data_types import (
    DepthField, DepthRangeInfo, OverscannedSource, PreviewSnapshot, RenderOutput, Viewpoint, freeze
)
from ..errors import InvalidGeometryError, RenderError
from ..settings import ParallaxTuning
from .band_mask_factory import build_band_mask
from .filters import lerp, translate_and_crop

# Intensities at or below this are treated as "effect off"
INTENSITY_EPSILON = 1e-6


def band_motion_weight(mid: float, near_exponent: float) -> float:
    """
    Signed motion weight of a band centred at depth ``mid``.

    +1 for the farthest depth, 0 at mid-depth, -1 for the nearest depth;
    magnitudes are shaped by ``|signed| ** near_exponent`` (exponent >= 1).
    """
    signed = (0.5 - mid) * 2.0
    if signed == 0:
        return 0.0
    return math.copysign(abs(signed) ** max(near_exponent, 1.0), signed)


def iter_bands(band_count: int) -> Iterator[Tuple[float, float]]:
    """Equal-width depth intervals ordered far (0) to near (1)."""
    for i in range(band_count):
        yield i / band_count, (i + 1) / band_count


class ParallaxCompositor:
    """Renders viewpoint-shifted frames from an overscanned source and depth field."""

    def __init__(self, tuning: Optional[ParallaxTuning] = None):
        """
        Initialize the compositor.

        Args:
            tuning: Band, feather and feasibility-gate tuning
        """
        self.tuning = tuning or ParallaxTuning()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def render(
        self,
        source: OverscannedSource,
        depth: DepthField,
        output_size: Tuple[int, int],
        viewpoint: Viewpoint,
        band_count: Optional[int] = None,
        feather: Optional[float] = None,
        dilate_radius: Optional[float] = None,
        near_exponent: Optional[float] = None,
        depth_range: Optional[DepthRangeInfo] = None
    ) -> RenderOutput:
        """
        Render one frame for ``viewpoint``.

        Args:
            source: Overscanned source built for ``output_size``
            depth: Depth field (resampled to ``output_size`` if it differs)
            output_size: (width, height) of the frame
            viewpoint: Yaw/pitch/intensity (clamped to their ranges)
            band_count: Override of ``tuning.band_count``
            feather: Override of ``tuning.band_feather``
            dilate_radius: Override of ``tuning.mask_dilate_radius``
            near_exponent: Override of ``tuning.near_exponent``
            depth_range: Precomputed depth range (defaults to ``depth.range_info``)

        Returns:
            RenderOutput: Frame plus whether parallax was applied and why not

        Raises:
            InvalidGeometryError: If the source was built for another frame size
                or with less travel than the tuning asks for
            RenderError: If compositing fails (e.g. allocation failure)
        """
        tuning = self.tuning
        band_count = tuning.band_count if band_count is None else int(band_count)
        feather = tuning.band_feather if feather is None else feather
        dilate_radius = tuning.mask_dilate_radius if dilate_radius is None else dilate_radius
        near_exponent = tuning.near_exponent if near_exponent is None else near_exponent
        depth_range = depth.range_info if depth_range is None else depth_range
        output_size = (int(output_size[0]), int(output_size[1]))

        self._validate_geometry(source, output_size, band_count)
        view = viewpoint.clamped()

        try:
            base = translate_and_crop(source.pixels, source.origin, 0.0, 0.0, output_size)

            reason = self.fallback_reason(view, depth_range, output_size)
            if reason is not None:
                self.logger.debug(f"Fallback frame: {reason}")
                return RenderOutput(frame=freeze(base), used_parallax=False, fallback_reason=reason)

            travel = self.travel_pixels(output_size, view.intensity)
            depth_values = depth.values

            acc = base
            for lower, upper in iter_bands(band_count):
                weight = band_motion_weight((lower + upper) * 0.5, near_exponent)
                dx = view.yaw * travel * weight
                dy = view.pitch * travel * weight

                mask_lower, mask_upper = lower, upper
                if tuning.extend_edge_bands:
                    if lower <= 0.0:
                        mask_lower = lower - feather
                    if upper >= 1.0:
                        mask_upper = upper + feather

                mask = build_band_mask(depth_values, mask_lower, mask_upper,
                                       feather, dilate_radius, output_size)
                shifted = translate_and_crop(source.pixels, source.origin, dx, dy, output_size)
                acc = lerp(acc, shifted, mask)

        except (cv2.error, MemoryError) as e:
            raise RenderError(f"Compositing failed at {output_size[0]}x{output_size[1]}: {e}") from e

        frame = np.clip(acc, 0.0, 1.0).astype(np.float32, copy=False)
        return RenderOutput(frame=freeze(frame), used_parallax=True, fallback_reason=None)

    def travel_pixels(self, output_size: Tuple[int, int], intensity: float) -> float:
        """Full-scale shift in pixels for ``intensity``."""
        return min(output_size) * self.tuning.travel_fraction * max(0.0, intensity)

    def fallback_reason(
        self,
        viewpoint: Viewpoint,
        depth_range: DepthRangeInfo,
        output_size: Tuple[int, int]
    ) -> Optional[str]:
        """
        Feasibility gate: why parallax would not be worth compositing, or None.

        Checked in order: flat depth, zero intensity, negligible motion.
        """
        tuning = self.tuning
        if depth_range.span < tuning.min_depth_range_for_parallax:
            return (f"flat depth: range {depth_range.span:.4f} is below "
                    f"{tuning.min_depth_range_for_parallax:.4f}")

        if viewpoint.intensity <= INTENSITY_EPSILON:
            return "intensity is zero"

        travel = self.travel_pixels(output_size, viewpoint.intensity)
        motion = math.hypot(viewpoint.yaw * travel, viewpoint.pitch * travel)
        if motion < tuning.min_motion_pixels_for_parallax:
            return (f"tilt too small: {motion:.2f}px of motion is below "
                    f"{tuning.min_motion_pixels_for_parallax:.2f}px")

        return None

    def _validate_geometry(self, source: OverscannedSource, output_size: Tuple[int, int], band_count: int) -> None:
        if output_size[0] <= 0 or output_size[1] <= 0:
            raise InvalidGeometryError(f"Output size must be positive, got {output_size}")
        if tuple(source.output_size) != output_size:
            raise InvalidGeometryError(
                f"Overscanned source was built for {source.output_size}, not {output_size}"
            )
        if source.travel_fraction + 1e-9 < self.tuning.travel_fraction:
            raise InvalidGeometryError(
                f"Overscan travel {source.travel_fraction} is smaller than tuning travel "
                f"{self.tuning.travel_fraction}; edges would be exposed"
            )
        if band_count < 1:
            raise ValueError(f"band_count must be at least 1, got {band_count}")


def compose_snapshot(snapshot: PreviewSnapshot, viewpoint: Viewpoint) -> RenderOutput:
    """Pure render of a captured snapshot; safe to call from any thread."""
    compositor = ParallaxCompositor(snapshot.tuning)
    return compositor.render(
        snapshot.source,
        snapshot.depth,
        snapshot.size,
        viewpoint,
        depth_range=snapshot.depth_range,
    )
