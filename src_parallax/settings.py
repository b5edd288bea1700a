"""
Typed tuning bundles built from the JSON configuration.

The values here are empirically tuned defaults, not derived invariants; every
one of them can be overridden from the configuration file.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass(frozen=True)
class ParallaxTuning:
    """Compositor and overscan tuning."""

    # Max per-axis travel as a fraction of the shorter edge at intensity 1.0
    travel_fraction: float = 0.08
    # Extra overscan beyond the travel to hide edges at large tilts
    overscan_safety: float = 0.02
    band_count: int = 8
    # Band feather width in depth units
    band_feather: float = 0.15
    mask_dilate_radius: float = 1.0
    # 1.0 = linear depth-to-motion mapping; >1 pops near bands
    near_exponent: float = 1.15
    min_depth_range_for_parallax: float = 0.015
    min_motion_pixels_for_parallax: float = 0.5
    # Outermost bands reach one feather past [0, 1] so depth 0/1 is selected
    extend_edge_bands: bool = True

    def __post_init__(self):
        if self.band_count < 1:
            raise ValueError(f"band_count must be at least 1, got {self.band_count}")
        if self.travel_fraction < 0 or self.overscan_safety < 0:
            raise ValueError("travel_fraction and overscan_safety must be non-negative")
        if self.band_feather < 0 or self.mask_dilate_radius < 0:
            raise ValueError("band_feather and mask_dilate_radius must be non-negative")
        if self.near_exponent <= 0:
            raise ValueError(f"near_exponent must be positive, got {self.near_exponent}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DepthSettings:
    """Depth synthesis radii (pixels) and radial fallback geometry."""

    mask_close_radius: float = 1.0
    mask_blur_radius: float = 3.0
    final_blur_radius: float = 2.0
    radial_inner_fraction: float = 0.25
    radial_outer_fraction: float = 0.9

    def __post_init__(self):
        if not 0.0 <= self.radial_inner_fraction < self.radial_outer_fraction:
            raise ValueError(
                f"radial fractions must satisfy 0 <= inner < outer, got "
                f"{self.radial_inner_fraction} / {self.radial_outer_fraction}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LodSettings:
    """Preview level-of-detail quantisation and hysteresis."""

    preview_target_longest: int = 1600
    quantum: int = 64
    min_longest: int = 256
    hysteresis_px: float = 32.0
    scale_hysteresis: float = 0.04

    def __post_init__(self):
        if self.quantum <= 0 or self.min_longest <= 0:
            raise ValueError("quantum and min_longest must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
