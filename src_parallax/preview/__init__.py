"""
Interactive preview module.

This module contains the level-of-detail manager, the coalescing frame
scheduler and the device-tilt viewpoint provider.
"""

from .lod_manager import LevelOfDetailManager
from .frame_scheduler import FrameScheduler, SchedulerState
from .motion import MotionTiltProvider, normalize_attitude

__all__ = [
    'LevelOfDetailManager',
    'FrameScheduler',
    'SchedulerState',
    'MotionTiltProvider',
    'normalize_attitude'
]
