"""
Parallax compositing module.

This module contains the raster filter primitives, the overscan builder, the
band mask factory and the band-partitioned parallax compositor.
"""

from .overscan_builder import build_overscan, max_shift_pixels, overscan_scale_for
from .band_mask_factory import build_band_mask
from .parallax_compositor import ParallaxCompositor, band_motion_weight, compose_snapshot, iter_bands

__all__ = [
    'build_overscan',
    'max_shift_pixels',
    'overscan_scale_for',
    'build_band_mask',
    'ParallaxCompositor',
    'band_motion_weight',
    'compose_snapshot',
    'iter_bands'
]
