"""
Encoder sinks for exported clips.

The exporter only talks to the :class:`EncoderSink` interface. The default
implementation wraps ``cv2.VideoWriter`` and writes an mp4v stream.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from utils.image_processing import ImageProcessor
from utils.logger_config import get_logger

from ..errors import EncoderError


def even_frame_size(size: Tuple[int, int]) -> Tuple[int, int]:
    """Round (width, height) down to even values, as most codecs require."""
    width, height = int(size[0]), int(size[1])
    return width - width % 2, height - height % 2


class EncoderSink(ABC):
    """Consumes frames in presentation order and produces a container file."""

    @abstractmethod
    def open(self, path: Union[str, Path], frame_size: Tuple[int, int], fps: int) -> None:
        """Start a new stream at ``path``."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Back-pressure signal: False while the sink cannot take another frame."""

    @abstractmethod
    def append(self, frame: np.ndarray, timestamp: float) -> None:
        """Append one float RGB(A) frame with its presentation time in seconds."""

    @abstractmethod
    def finish(self) -> None:
        """Flush and close the stream."""

    @abstractmethod
    def cancel(self) -> None:
        """Abandon the stream. Must be safe to call in any state."""


class OpenCVVideoEncoder(EncoderSink):
    """mp4v encoder built on ``cv2.VideoWriter``."""

    def __init__(self, fourcc: str = "mp4v"):
        self.fourcc = fourcc
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self._writer: Optional[cv2.VideoWriter] = None
        self._frame_size: Optional[Tuple[int, int]] = None
        self._path: Optional[Path] = None
        self.frames_written = 0

    def open(self, path: Union[str, Path], frame_size: Tuple[int, int], fps: int) -> None:
        width, height = even_frame_size(frame_size)
        if width <= 0 or height <= 0:
            raise EncoderError(f"Frame size {frame_size} is too small to encode")

        writer = cv2.VideoWriter(
            str(path), cv2.VideoWriter_fourcc(*self.fourcc), float(fps), (width, height)
        )
        if not writer.isOpened():
            raise EncoderError(f"Could not open video writer for {path} ({self.fourcc}, {width}x{height})")

        self._writer = writer
        self._frame_size = (width, height)
        self._path = Path(path)
        self.frames_written = 0
        self.logger.debug(f"Opened {self.fourcc} writer {width}x{height}@{fps} -> {path}")

    def is_ready(self) -> bool:
        # VideoWriter.write blocks until the frame is accepted
        return self._writer is not None

    def append(self, frame: np.ndarray, timestamp: float) -> None:
        if self._writer is None:
            raise EncoderError("append() called on a closed encoder")
        try:
            self._writer.write(ImageProcessor.to_bgr_uint8(frame, self._frame_size))
        except cv2.error as e:
            raise EncoderError(f"Failed to encode frame at t={timestamp:.3f}s: {e}") from e
        self.frames_written += 1

    def finish(self) -> None:
        if self._writer is None:
            raise EncoderError("finish() called on a closed encoder")
        self._writer.release()
        self._writer = None
        self.logger.debug(f"Finished {self._path} with {self.frames_written} frames")

    def cancel(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
