"""
Depth synthesis module.

This module builds a single-channel depth field for a photograph, either from
a subject segmentation mask or from a radial near-centre fallback.
"""

from .depth_synthesizer import DepthSynthesizer
from .segmentation import (
    SegmentationProvider,
    NullSegmentationProvider,
    CallableSegmentationProvider
)

__all__ = [
    'DepthSynthesizer',
    'SegmentationProvider',
    'NullSegmentationProvider',
    'CallableSegmentationProvider'
]
