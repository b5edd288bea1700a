"""
Base classes for pipeline output handling.
"""

from .file_manager import BaseFileManager

__all__ = ['BaseFileManager']
