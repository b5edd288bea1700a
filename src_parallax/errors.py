"""
Exception hierarchy for the parallax pipeline.

Degraded-quality situations (flat depth, negligible tilt, zero intensity) are
not errors; they travel with the frame in ``RenderOutput.fallback_reason``.
"""


class ParallaxError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(ParallaxError, ValueError):
    """The input image could not be decoded into a usable raster."""


class InvalidGeometryError(ParallaxError, ValueError):
    """Raster dimensions or overscan fractions are unusable."""


class RenderError(ParallaxError):
    """A single frame could not be composited."""


class EncoderError(ParallaxError):
    """The encoder sink failed to open, accept a frame or finish."""


class ExportError(ParallaxError):
    """The export job was aborted; no output file is left behind."""


class ExportCancelled(ParallaxError):
    """The export job was cancelled by the caller (not a failure)."""
