"""
Overscanned source construction.

The source photo is enlarged uniformly and re-centred over the original frame
so that shifting it by the largest allowed parallax travel never exposes
pixels outside the raster.
"""

import math
import numpy as np
from typing import Tuple

from utils.logger_config import get_logger

from ..data_types import OverscannedSource, freeze
from ..errors import InvalidGeometryError
from .filters import scale_uniform

logger = get_logger(__name__)


def overscan_scale_for(travel_fraction: float, safety_margin: float) -> float:
    """Uniform enlargement needed for a given travel and safety margin."""
    return 1.0 + 2.0 * (travel_fraction + safety_margin)


def max_shift_pixels(output_size: Tuple[int, int], travel_fraction: float) -> float:
    """Largest per-axis shift the compositor can request (intensity 1, |yaw| = 1)."""
    return min(output_size) * travel_fraction


def build_overscan(image: np.ndarray, travel_fraction: float, safety_margin: float) -> OverscannedSource:
    """
    Enlarge ``image`` and centre it over the original output frame.

    Args:
        image: (H, W, C) source raster
        travel_fraction: Max per-axis travel as a fraction of the shorter edge
        safety_margin: Extra fraction of each dimension kept in reserve

    Returns:
        OverscannedSource: Finite-extent enlarged source

    Raises:
        InvalidGeometryError: On non-positive dimensions or negative fractions
    """
    if image is None or image.ndim not in (2, 3):
        raise InvalidGeometryError("Overscan source must be a 2D or 3D raster")

    height, width = image.shape[:2]
    if width <= 0 or height <= 0:
        raise InvalidGeometryError(f"Cannot overscan a {width}x{height} image")
    if travel_fraction < 0 or safety_margin < 0:
        raise InvalidGeometryError(
            f"Overscan fractions must be non-negative: travel={travel_fraction}, safety={safety_margin}"
        )

    scale = overscan_scale_for(travel_fraction, safety_margin)
    pixels = scale_uniform(image, scale)
    scaled_h, scaled_w = pixels.shape[:2]

    # Translation -(dim * (scale - 1) / 2), measured on the rounded raster
    origin = ((scaled_w - width) / 2.0, (scaled_h - height) / 2.0)

    source = OverscannedSource(
        pixels=freeze(np.ascontiguousarray(pixels, dtype=np.float32)),
        origin=origin,
        output_size=(width, height),
        scale=scale,
        travel_fraction=travel_fraction,
        safety_margin=safety_margin,
    )

    worst_case = max_shift_pixels((width, height), travel_fraction)
    # Bilinear sampling reads one extra pixel past the shifted window
    if source.margin_px < math.ceil(worst_case) + 1 and travel_fraction > 0:
        logger.warning(f"Overscan margin {source.margin_px:.1f}px is tight for a "
                       f"{worst_case:.1f}px shift; increase the safety margin")

    logger.debug(f"Overscan built: {width}x{height} -> {scaled_w}x{scaled_h} "
                 f"(scale={scale:.3f}, origin=({origin[0]:.1f}, {origin[1]:.1f}))")
    return source
