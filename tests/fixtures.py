"""Shared rasters, snapshots and fake collaborators for the test modules."""

import threading
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from src_parallax.compositing.overscan_builder import build_overscan
from src_parallax.data_types import DepthField, PreviewSnapshot
from src_parallax.errors import EncoderError
from src_parallax.export.encoder import EncoderSink
from src_parallax.settings import ParallaxTuning


def gradient_image(width: int = 200, height: int = 100, channels: int = 3) -> np.ndarray:
    """Horizontal ramp: every channel equals x / width."""
    row = (np.arange(width, dtype=np.float32) + 0.5) / width
    image = np.repeat(row[None, :], height, axis=0)
    return np.repeat(image[..., None], channels, axis=2)


def half_split_depth(width: int = 200, height: int = 100) -> DepthField:
    """Left half far (0), right half near (1)."""
    values = np.zeros((height, width), dtype=np.float32)
    values[:, width // 2:] = 1.0
    return DepthField.from_array(values)


def flat_depth(width: int = 200, height: int = 100, value: float = 0.5) -> DepthField:
    return DepthField.from_array(np.full((height, width), value, dtype=np.float32))


def make_snapshot(image: np.ndarray, depth: DepthField,
                  tuning: Optional[ParallaxTuning] = None) -> PreviewSnapshot:
    tuning = tuning or ParallaxTuning()
    source = build_overscan(image, tuning.travel_fraction, tuning.overscan_safety)
    return PreviewSnapshot(source=source, depth=depth, size=source.output_size, tuning=tuning)


class FakeSink(EncoderSink):
    """In-memory encoder sink; ``finish`` writes a small file at the opened path."""

    def __init__(self, not_ready_polls: int = 0, fail_at: Optional[int] = None,
                 never_ready: bool = False):
        self.not_ready_polls = not_ready_polls
        self.fail_at = fail_at
        self.never_ready = never_ready
        self.path: Optional[Path] = None
        self.frame_size: Optional[Tuple[int, int]] = None
        self.fps: Optional[int] = None
        self.timestamps: List[float] = []
        self.frame_shapes: List[tuple] = []
        self.ready_polls = 0
        self.finished = False
        self.cancelled = False
        self._lock = threading.Lock()

    def open(self, path, frame_size, fps) -> None:
        self.path = Path(path)
        self.frame_size = frame_size
        self.fps = fps
        self.path.write_bytes(b"")

    def is_ready(self) -> bool:
        with self._lock:
            self.ready_polls += 1
            if self.never_ready:
                return False
            if self.not_ready_polls > 0:
                self.not_ready_polls -= 1
                return False
            return True

    def append(self, frame, timestamp) -> None:
        if self.fail_at is not None and len(self.timestamps) == self.fail_at:
            raise EncoderError("disk full")
        self.timestamps.append(timestamp)
        self.frame_shapes.append(frame.shape)

    def finish(self) -> None:
        self.finished = True
        self.path.write_bytes(b"fake-mp4")

    def cancel(self) -> None:
        self.cancelled = True
