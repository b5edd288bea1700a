"""
Synthetic depth estimation from a single photograph.

A subject mask (when a segmentation provider supplies one) is treated as
"nearness" directly; without one, a soft radial near-centre gradient gives
every image at least some depth signal instead of a flat field.
"""

import numpy as np
from typing import Optional

from utils.logger_config import get_logger

from ..compositing.filters import clamp01, close_holes, gaussian_blur, resize_to
from ..data_types import DepthField
from ..errors import DecodeError
from ..settings import DepthSettings
from .segmentation import SegmentationProvider


class DepthSynthesizer:
    """Builds a DepthField (0..1, 1 = nearest) for an input image."""

    def __init__(self, settings: Optional[DepthSettings] = None):
        """
        Initialize the synthesizer.

        Args:
            settings: Blur/closing radii and radial fallback geometry
        """
        self.settings = settings or DepthSettings()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def synthesize(self, image: np.ndarray, segmentation_mask: Optional[np.ndarray] = None) -> DepthField:
        """
        Synthesize a depth field for ``image``.

        Args:
            image: (H, W, C) raster of the decoded photo
            segmentation_mask: Optional subject probability mask, any size

        Returns:
            DepthField: Same pixel size as ``image``, values clamped to [0, 1]

        Raises:
            DecodeError: If ``image`` is not a usable raster
        """
        width, height = self._validate_image(image)

        if segmentation_mask is not None:
            depth = self._depth_from_mask(segmentation_mask, (width, height))
            source = "segmentation"
        else:
            depth = self.radial_near_map((width, height))
            source = "radial"

        depth = clamp01(gaussian_blur(depth, self.settings.final_blur_radius))
        field = DepthField.from_array(depth)

        self.logger.info(f"Depth synthesized from {source} source: "
                         f"{width}x{height}, range=[{field.range_info.minimum:.3f}, "
                         f"{field.range_info.maximum:.3f}]")
        return field

    def synthesize_with_provider(
        self,
        image: np.ndarray,
        provider: Optional[SegmentationProvider]
    ) -> DepthField:
        """
        Ask ``provider`` for a subject mask, falling back to the radial map.

        Segmentation failures never propagate: an exception, a ``None``
        result or an unusable mask all select the radial path.
        """
        self._validate_image(image)

        mask = None
        if provider is not None:
            try:
                mask = provider.segment(image)
            except Exception as e:
                self.logger.warning(f"Segmentation failed, using radial depth: {e}")
                mask = None

        if mask is not None:
            mask = np.asarray(mask)
            if mask.ndim == 3 and mask.shape[2] == 1:
                mask = mask[..., 0]
            if mask.ndim != 2 or mask.size == 0 or not np.all(np.isfinite(mask)):
                self.logger.warning(f"Ignoring unusable segmentation mask with shape {mask.shape}")
                mask = None

        return self.synthesize(image, mask)

    def _depth_from_mask(self, mask: np.ndarray, size) -> np.ndarray:
        """Resize, close small holes, then low-pass the subject mask."""
        mask = np.asarray(mask)
        if mask.dtype == np.uint8:
            mask = mask.astype(np.float32) / 255.0
        else:
            # Float masks are confidences; overshoot is clamped, not rescaled
            mask = mask.astype(np.float32)
        mask = clamp01(resize_to(mask, size))
        closed = close_holes(mask, self.settings.mask_close_radius)
        return gaussian_blur(closed, self.settings.mask_blur_radius)

    def radial_near_map(self, size) -> np.ndarray:
        """
        Soft near-centre map: 1.0 inside the inner radius, 0.0 beyond the outer.

        Args:
            size: (width, height) of the map

        Returns:
            np.ndarray: (H, W) float32 map
        """
        width, height = size
        shorter = float(min(width, height))
        inner = shorter * self.settings.radial_inner_fraction
        outer = shorter * self.settings.radial_outer_fraction

        yy, xx = np.meshgrid(
            np.arange(height, dtype=np.float32) + 0.5,
            np.arange(width, dtype=np.float32) + 0.5,
            indexing="ij"
        )
        distance = np.hypot(xx - width / 2.0, yy - height / 2.0)
        return clamp01((outer - distance) / (outer - inner))

    @staticmethod
    def _validate_image(image: np.ndarray):
        if image is None:
            raise DecodeError("Image is None")
        if not isinstance(image, np.ndarray) or image.ndim not in (2, 3):
            raise DecodeError(f"Image must be a 2D or 3D array, got {type(image).__name__}")
        height, width = image.shape[:2]
        if width <= 0 or height <= 0:
            raise DecodeError(f"Image has no pixels: {image.shape}")
        return width, height
