"""
Device-attitude to viewpoint normalisation.

A sensor source (gyroscope bridge, replayed log, test harness) pushes raw
attitude angles in radians; the provider maps them onto the [-1, 1] yaw/pitch
range the compositor expects and forwards a Viewpoint to its listener.
"""

import math
import threading
from typing import Callable, Optional, Tuple

from utils.logger_config import get_logger

from ..data_types import Viewpoint

# +/- 30 degrees of device tilt spans the full viewpoint range
DEFAULT_MAX_ANGLE = math.pi / 6.0


def normalize_attitude(yaw_rad: float, pitch_rad: float,
                       max_angle: float = DEFAULT_MAX_ANGLE) -> Tuple[float, float]:
    """
    Map attitude angles to normalised yaw/pitch.

    Args:
        yaw_rad: Device yaw in radians
        pitch_rad: Device pitch in radians
        max_angle: Angle mapped to +/-1

    Returns:
        Tuple[float, float]: (yaw, pitch), each clamped to [-1, 1]
    """
    if max_angle <= 0:
        raise ValueError(f"max_angle must be positive, got {max_angle}")
    yaw = max(-1.0, min(1.0, yaw_rad / max_angle))
    pitch = max(-1.0, min(1.0, pitch_rad / max_angle))
    return yaw, pitch


class MotionTiltProvider:
    """Holds the latest tilt sample and forwards it as a Viewpoint."""

    def __init__(
        self,
        listener: Optional[Callable[[Viewpoint], None]] = None,
        intensity: float = 1.0,
        max_angle: float = DEFAULT_MAX_ANGLE
    ):
        """
        Initialize the provider.

        Args:
            listener: Receives a Viewpoint per accepted sample, e.g.
                ``FrameScheduler.request_render``
            intensity: Parallax intensity attached to every viewpoint
            max_angle: Attitude angle (radians) mapped to full deflection
        """
        self.listener = listener
        self.intensity = intensity
        self.max_angle = max_angle
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        self._lock = threading.Lock()
        self._active = False
        self._logged_first_sample = False
        self.yaw = 0.0
        self.pitch = 0.0

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Begin accepting samples. Calling it again while active is a no-op."""
        with self._lock:
            if self._active:
                return
            self._active = True
            self._logged_first_sample = False
        self.logger.info("Motion updates started")

    def stop(self) -> None:
        """Stop accepting samples. Calling it again while stopped is a no-op."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self.logger.info("Motion updates stopped")

    def push_attitude(self, yaw_rad: float, pitch_rad: float) -> Optional[Viewpoint]:
        """
        Feed one raw attitude sample.

        Returns:
            Optional[Viewpoint]: The forwarded viewpoint, or None if inactive
        """
        with self._lock:
            if not self._active:
                return None
            self.yaw, self.pitch = normalize_attitude(yaw_rad, pitch_rad, self.max_angle)
            first = not self._logged_first_sample
            self._logged_first_sample = True
            viewpoint = self.current_viewpoint()

        if first:
            self.logger.info(f"First sample: yaw={self.yaw:.3f} pitch={self.pitch:.3f}")

        if self.listener is not None:
            self.listener(viewpoint)
        return viewpoint

    def report_error(self, error: Exception) -> None:
        """Sensor-side failure; logged, the provider stays active."""
        self.logger.error(f"Motion source error: {error}")

    def current_viewpoint(self) -> Viewpoint:
        return Viewpoint(yaw=self.yaw, pitch=self.pitch, intensity=self.intensity).clamped()
