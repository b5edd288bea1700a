"""
Immutable value types shared by the depth, compositing, preview and export stages.

Rasters stored in these containers are flagged read-only on construction, so a
snapshot can be handed to a background worker while the owning thread replaces
(never mutates) the engine state it came from.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from .settings import ParallaxTuning


Size = Tuple[int, int]  # (width, height)


def freeze(array: np.ndarray) -> np.ndarray:
    """Return ``array`` flagged read-only (copying views of writable buffers)."""
    if array.base is not None and array.base.flags.writeable:
        array = array.copy()
    array.flags.writeable = False
    return array


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


@dataclass(frozen=True)
class Viewpoint:
    """Simulated gaze: yaw/pitch in [-1, 1], parallax intensity in [0, 1]."""

    yaw: float = 0.0
    pitch: float = 0.0
    intensity: float = 1.0

    def clamped(self) -> "Viewpoint":
        return Viewpoint(
            yaw=_clamp(self.yaw, -1.0, 1.0),
            pitch=_clamp(self.pitch, -1.0, 1.0),
            intensity=_clamp(self.intensity, 0.0, 1.0),
        )


@dataclass(frozen=True)
class DepthRangeInfo:
    """Min/max of a depth field, measured once when the field is built."""

    minimum: float
    maximum: float

    @property
    def span(self) -> float:
        return self.maximum - self.minimum


@dataclass(frozen=True)
class DepthField:
    """
    Single-channel depth estimate, 1.0 = nearest, 0.0 = farthest.

    Use :meth:`from_array` to build one; it clamps, converts to float32,
    freezes the buffer and measures the range exactly once.
    """

    values: np.ndarray
    range_info: DepthRangeInfo

    @classmethod
    def from_array(cls, values: np.ndarray) -> "DepthField":
        depth = np.clip(np.asarray(values, dtype=np.float32), 0.0, 1.0)
        if depth.ndim != 2:
            raise ValueError(f"Depth field must be 2D, got shape {depth.shape}")
        if depth.size == 0:
            raise ValueError("Depth field is empty")
        depth = freeze(np.ascontiguousarray(depth))
        info = DepthRangeInfo(minimum=float(depth.min()), maximum=float(depth.max()))
        return cls(values=depth, range_info=info)

    @property
    def depth_range(self) -> float:
        return self.range_info.span

    @property
    def size(self) -> Size:
        height, width = self.values.shape
        return width, height

    def resized(self, size: Size) -> "DepthField":
        """Independent copy resampled to ``size`` (width, height)."""
        if tuple(size) == self.size:
            return self
        # Local import keeps this module free of OpenCV for type-only users
        from .compositing.filters import resize_to
        return DepthField.from_array(resize_to(self.values, size))


@dataclass(frozen=True)
class OverscannedSource:
    """
    Source image enlarged beyond the output frame.

    ``origin`` is the position of the output frame's top-left corner inside
    ``pixels``; any shift up to ``margin_px`` in either axis stays covered.
    """

    pixels: np.ndarray
    origin: Tuple[float, float]
    output_size: Size
    scale: float
    travel_fraction: float
    safety_margin: float

    @property
    def margin_px(self) -> float:
        """Smallest distance between the output frame and the raster edge."""
        ox, oy = self.origin
        out_w, out_h = self.output_size
        height, width = self.pixels.shape[:2]
        return min(ox, oy, width - out_w - ox, height - out_h - oy)


@dataclass(frozen=True)
class RenderOutput:
    """A rendered frame together with the feasibility gate's verdict."""

    frame: np.ndarray
    used_parallax: bool
    fallback_reason: Optional[str] = None


@dataclass(frozen=True)
class PreviewSnapshot:
    """Everything a background preview composition needs, captured at once."""

    source: OverscannedSource
    depth: DepthField
    size: Size
    tuning: "ParallaxTuning"
    depth_range: DepthRangeInfo = field(default=None)

    def __post_init__(self):
        if self.depth_range is None:
            object.__setattr__(self, 'depth_range', self.depth.range_info)
