"""
Export parameters and the elliptical look-around path.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, Iterator, Tuple

from ..data_types import Viewpoint

MIN_SECONDS = 0.5
MIN_FPS = 1


class MotionCurve(Enum):
    """How motion progresses over the clip; maps t in [0, 1] to [0, 1]."""

    LINEAR = "linear"
    EASE_IN_OUT = "ease_in_out"

    def apply(self, t: float) -> float:
        if self is MotionCurve.EASE_IN_OUT:
            # Smoothstep: gentle start and stop
            return t * t * (3.0 - 2.0 * t)
        return t

    @classmethod
    def from_name(cls, name: str) -> "MotionCurve":
        """Parse a config value such as ``"linear"`` or ``"easeInOut"``."""
        key = str(name).replace("-", "_").lower()
        if key in ("easeinout", "ease_in_out", "smoothstep"):
            return cls.EASE_IN_OUT
        if key == "linear":
            return cls.LINEAR
        raise ValueError(f"Unknown motion curve: {name!r}")


@dataclass(frozen=True)
class ExportOptions:
    """
    Parameters of one exported clip.

    ``seconds`` and ``fps`` are floored at 0.5 s and 1 fps when the frame
    count is computed, so out-of-range UI values still export something.
    """

    seconds: float = 4.0
    fps: int = 30
    base_intensity: float = 1.0
    curve: MotionCurve = MotionCurve.EASE_IN_OUT
    yaw_amplitude: float = 0.85
    pitch_amplitude: float = 0.40

    @property
    def effective_seconds(self) -> float:
        return max(MIN_SECONDS, float(self.seconds))

    @property
    def effective_fps(self) -> int:
        return max(MIN_FPS, int(self.fps))

    @property
    def total_frames(self) -> int:
        # Half-up rounding: 2.5 s at 1 fps is 3 frames
        return max(1, int(math.floor(self.effective_seconds * self.effective_fps + 0.5)))

    def progress_at(self, index: int) -> float:
        """Raw path position of frame ``index`` before the curve is applied."""
        total = self.total_frames
        if total <= 1:
            return 0.0
        return index / float(total - 1)

    def angles_at(self, index: int) -> Tuple[float, float]:
        """(yaw, pitch) on the ellipse for frame ``index``."""
        theta = self.curve.apply(self.progress_at(index)) * 2.0 * math.pi
        return math.sin(theta) * self.yaw_amplitude, math.cos(theta) * self.pitch_amplitude

    def viewpoint_at(self, index: int) -> Viewpoint:
        yaw, pitch = self.angles_at(index)
        return Viewpoint(yaw=yaw, pitch=pitch, intensity=self.base_intensity)

    def timestamp_at(self, index: int) -> float:
        """Presentation time of frame ``index`` in seconds."""
        return index / float(self.effective_fps)

    def iter_frames(self) -> Iterator[Tuple[int, float, Viewpoint]]:
        for index in range(self.total_frames):
            yield index, self.timestamp_at(index), self.viewpoint_at(index)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['curve'] = self.curve.value
        data['total_frames'] = self.total_frames
        return data
