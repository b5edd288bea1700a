"""
Image input/output conversions for the parallax pipeline.

This module turns user-selected photos (file paths, encoded bytes or raw
arrays) into the float32 RGB(A) rasters the pipeline works on, limits their
size for memory safety, and converts rendered frames back into 8-bit BGR for
OpenCV consumers such as the video writer.
"""

import cv2
import numpy as np
from typing import Tuple, Optional, Union
from pathlib import Path

from src_parallax.errors import DecodeError
from utils.logger_config import get_logger

logger = get_logger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, np.ndarray]


class ImageProcessor:
    """Decodes and converts images for depth synthesis and compositing."""

    @staticmethod
    def decode_image(source: ImageSource) -> np.ndarray:
        """
        Decode an image into a float32 RGB or RGBA raster in [0, 1].

        Args:
            source: Path to an image file, encoded image bytes, or an array
                (uint8, uint16 or float; grayscale, RGB or RGBA)

        Returns:
            np.ndarray: (H, W, 3) or (H, W, 4) float32 raster

        Raises:
            DecodeError: If the source cannot be decoded
        """
        if source is None:
            raise DecodeError("Image source is None")

        if isinstance(source, np.ndarray):
            return ImageProcessor.normalize_array(source)

        if isinstance(source, (bytes, bytearray)):
            buffer = np.frombuffer(bytes(source), dtype=np.uint8)
            if buffer.size == 0:
                raise DecodeError("Encoded image is empty")
            decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
            if decoded is None:
                raise DecodeError(f"Could not decode {buffer.size} bytes of image data")
            return ImageProcessor._from_opencv(decoded)

        path = Path(source)
        if not path.exists():
            raise DecodeError(f"Image file not found: {path}")
        decoded = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if decoded is None:
            raise DecodeError(f"Could not decode image file: {path}")

        logger.info(f"Decoded {path.name}: {decoded.shape[1]}x{decoded.shape[0]}")
        return ImageProcessor._from_opencv(decoded)

    @staticmethod
    def _from_opencv(decoded: np.ndarray) -> np.ndarray:
        """Convert OpenCV channel order (BGR/BGRA/gray) to RGB(A)."""
        if decoded.ndim == 2:
            decoded = cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGB)
        elif decoded.shape[2] == 4:
            decoded = cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)
        else:
            decoded = cv2.cvtColor(decoded, cv2.COLOR_BGR2RGB)
        return ImageProcessor.normalize_array(decoded)

    @staticmethod
    def normalize_array(image: np.ndarray) -> np.ndarray:
        """
        Validate an RGB(A) array and convert it to float32 in [0, 1].

        Raises:
            DecodeError: If the array is empty or has an unsupported layout
        """
        if image.size == 0:
            raise DecodeError("Image array is empty")

        if image.ndim == 2:
            image = np.repeat(image[..., None], 3, axis=2)
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise DecodeError(f"Unsupported image layout: {image.shape}")

        if image.dtype == np.uint8:
            raster = image.astype(np.float32) / 255.0
        elif image.dtype == np.uint16:
            raster = image.astype(np.float32) / 65535.0
        elif np.issubdtype(image.dtype, np.floating):
            raster = np.clip(image.astype(np.float32), 0.0, 1.0)
        else:
            raise DecodeError(f"Unsupported image dtype: {image.dtype}")

        if not np.all(np.isfinite(raster)):
            raise DecodeError("Image contains non-finite samples")

        return np.ascontiguousarray(raster)

    @staticmethod
    def limit_size(image: np.ndarray, max_dim: Optional[int]) -> np.ndarray:
        """
        Downscale so the longest edge does not exceed ``max_dim``.

        Args:
            image: Input raster
            max_dim: Longest edge limit in pixels (None disables the limit)

        Returns:
            np.ndarray: The input or a downscaled copy
        """
        if not max_dim:
            return image

        height, width = image.shape[:2]
        longest = max(width, height)
        if longest <= max_dim:
            return image

        scale = max_dim / float(longest)
        new_size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
        logger.info(f"Limiting input from {width}x{height} to {new_size[0]}x{new_size[1]}")
        return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)

    @staticmethod
    def to_bgr_uint8(frame: np.ndarray, size: Optional[Tuple[int, int]] = None) -> np.ndarray:
        """
        Convert a float RGB(A) frame to an 8-bit BGR image.

        Alpha is dropped (frames are composited over opaque sources).

        Args:
            frame: (H, W, 3|4) float raster in [0, 1]
            size: Optional (width, height) to crop to from the top-left

        Returns:
            np.ndarray: (H, W, 3) uint8 BGR image
        """
        if size is not None:
            width, height = size
            frame = frame[:height, :width]
        rgb = frame[..., :3] if frame.ndim == 3 else np.repeat(frame[..., None], 3, axis=2)
        rgb_u8 = (np.clip(rgb, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
        return cv2.cvtColor(rgb_u8, cv2.COLOR_RGB2BGR)
