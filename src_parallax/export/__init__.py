"""
Video export module.

This module contains the export options and look-around path, the encoder
sink interface with its OpenCV implementation, the sequential exporter and
the report file manager.
"""

from .export_options import ExportOptions, MotionCurve
from .encoder import EncoderSink, OpenCVVideoEncoder, even_frame_size
from .video_exporter import ExportResult, VideoExporter, default_export_path
from .file_manager import ExportFileManager

__all__ = [
    'ExportOptions',
    'MotionCurve',
    'EncoderSink',
    'OpenCVVideoEncoder',
    'even_frame_size',
    'ExportResult',
    'VideoExporter',
    'default_export_path',
    'ExportFileManager'
]
