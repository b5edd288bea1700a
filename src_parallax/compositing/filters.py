"""
Raster filter primitives for the parallax pipeline.

Each primitive is a pure ``raster -> raster`` function on float32 arrays in
[0, 1]; filter chains are composed with plain calls. Radii are in pixels,
ramp bounds in value units. All operations are deterministic.
"""

import cv2
import numpy as np
from typing import Tuple

from utils.logger_config import get_logger

logger = get_logger(__name__)


def clamp01(raster: np.ndarray) -> np.ndarray:
    """Clamp every sample to [0, 1]."""
    return np.clip(raster, 0.0, 1.0).astype(np.float32, copy=False)


def ramp(raster: np.ndarray, lower: float, upper: float) -> np.ndarray:
    """
    Piecewise-linear ramp: 0 at ``lower``, 1 at ``upper``, clamped.

    ``upper < lower`` gives the falling mirror. A zero-width ramp degrades to
    a hard step at ``lower``.
    """
    width = upper - lower
    if width == 0:
        return (raster >= lower).astype(np.float32)
    return clamp01((raster.astype(np.float32) - lower) / width)


def minimum(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Per-pixel minimum (intersection of two soft selections)."""
    return np.minimum(a, b)


def gaussian_blur(raster: np.ndarray, radius: float) -> np.ndarray:
    """
    Gaussian low-pass with edge samples replicated outward.

    Args:
        raster: Input raster (2D or 3D)
        radius: Standard deviation in pixels; <= 0 returns the input

    Returns:
        np.ndarray: Blurred raster
    """
    if radius <= 0:
        return raster
    return cv2.GaussianBlur(
        raster.astype(np.float32, copy=False), (0, 0),
        sigmaX=float(radius), sigmaY=float(radius),
        borderType=cv2.BORDER_REPLICATE
    )


def _structuring_element(radius: float) -> np.ndarray:
    r = int(round(radius))
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2 * r + 1, 2 * r + 1))


def dilate(raster: np.ndarray, radius: float) -> np.ndarray:
    """Morphological maximum over a disc of ``radius`` pixels."""
    if round(radius) < 1:
        return raster
    return cv2.dilate(raster.astype(np.float32, copy=False), _structuring_element(radius),
                      borderType=cv2.BORDER_REPLICATE)


def erode(raster: np.ndarray, radius: float) -> np.ndarray:
    """Morphological minimum over a disc of ``radius`` pixels."""
    if round(radius) < 1:
        return raster
    return cv2.erode(raster.astype(np.float32, copy=False), _structuring_element(radius),
                     borderType=cv2.BORDER_REPLICATE)


def close_holes(raster: np.ndarray, radius: float) -> np.ndarray:
    """Dilate then erode: fills gaps narrower than ``2 * radius``."""
    return erode(dilate(raster, radius), radius)


def lerp(background: np.ndarray, foreground: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Blend ``foreground`` over ``background`` with ``mask`` as its opacity.

    Args:
        background: (H, W, C) or (H, W) raster
        foreground: Raster of the same shape
        mask: (H, W) weights in [0, 1]

    Returns:
        np.ndarray: background + (foreground - background) * mask
    """
    weights = mask[..., None] if foreground.ndim == 3 else mask
    return background + (foreground - background) * weights


def resize_to(raster: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resample to exactly ``size`` (width, height); anisotropic if needed."""
    width, height = int(size[0]), int(size[1])
    src_h, src_w = raster.shape[:2]
    if (src_w, src_h) == (width, height):
        return raster
    shrinking = width * height < src_w * src_h
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    return cv2.resize(raster.astype(np.float32, copy=False), (width, height), interpolation=interpolation)


def scale_uniform(raster: np.ndarray, scale: float) -> np.ndarray:
    """Scale both axes by ``scale``; result dimensions are rounded."""
    src_h, src_w = raster.shape[:2]
    width = max(1, int(round(src_w * scale)))
    height = max(1, int(round(src_h * scale)))
    if scale > 1.0:
        scaled = cv2.resize(raster.astype(np.float32, copy=False), (width, height),
                            interpolation=cv2.INTER_CUBIC)
        return clamp01(scaled)
    return resize_to(raster, (width, height))


def translate_and_crop(
    source: np.ndarray,
    origin: Tuple[float, float],
    dx: float,
    dy: float,
    size: Tuple[int, int]
) -> np.ndarray:
    """
    Shift ``source`` by (dx, dy) and cut out the output window.

    The output pixel (x, y) samples ``source`` at
    ``(x - dx + origin_x, y - dy + origin_y)`` with bilinear interpolation.
    Samples outside ``source`` are 0, which makes coverage gaps visible.

    Args:
        source: Overscanned raster
        origin: Output frame's top-left corner inside ``source``
        dx: Horizontal shift in output pixels (positive moves content right)
        dy: Vertical shift in output pixels (positive moves content down)
        size: Output (width, height)

    Returns:
        np.ndarray: Output-sized raster
    """
    matrix = np.array([
        [1.0, 0.0, dx - origin[0]],
        [0.0, 1.0, dy - origin[1]]
    ], dtype=np.float64)
    return cv2.warpAffine(
        source, matrix, (int(size[0]), int(size[1])),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0
    )
