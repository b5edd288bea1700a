"""
Feathered, seam-hiding selection masks for depth bands.
"""

import numpy as np
from typing import Tuple

from .filters import clamp01, dilate, gaussian_blur, minimum, ramp, resize_to

# Lower bound for the feather so the ramps never divide by zero
MIN_FEATHER = 1e-4
# Blur radius in pixels per depth unit of feather
BLUR_PIXELS_PER_FEATHER = 10.0
MIN_BLUR_RADIUS = 0.5


def band_blur_radius(feather: float) -> float:
    """Blur applied to a band selection, proportional to its feather."""
    return max(MIN_BLUR_RADIUS, max(MIN_FEATHER, feather) * BLUR_PIXELS_PER_FEATHER)


def build_band_mask(
    depth: np.ndarray,
    lower: float,
    upper: float,
    feather: float,
    dilate_radius: float,
    target_size: Tuple[int, int]
) -> np.ndarray:
    """
    Build the soft selection mask for the depth interval [lower, upper].

    The mask is the per-pixel minimum of a rising ramp
    ``clamp((d - lower) / feather)`` and a falling ramp
    ``clamp((upper - d) / feather)``, blurred so bands moving by different
    amounts do not show seams, then dilated slightly so neighbouring bands
    overlap instead of both fading out at a shared edge.

    Args:
        depth: (H, W) depth values in [0, 1]
        lower: Lower band bound in depth units
        upper: Upper band bound in depth units
        feather: Ramp width in depth units
        dilate_radius: Dilation radius in pixels
        target_size: Output (width, height)

    Returns:
        np.ndarray: (target H, target W) float32 mask in [0, 1]
    """
    width, height = int(target_size[0]), int(target_size[1])
    if lower >= upper:
        return np.zeros((height, width), dtype=np.float32)

    eps = max(MIN_FEATHER, feather)
    rising = ramp(depth, lower, lower + eps)
    falling = ramp(depth, upper, upper - eps)
    band = minimum(rising, falling)

    blurred = gaussian_blur(band, band_blur_radius(eps))
    mask = clamp01(dilate(blurred, dilate_radius))

    return resize_to(mask, (width, height))
