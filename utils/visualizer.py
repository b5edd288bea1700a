"""
Chart generation for depth fields and export timelines.

This module renders the synthesized depth field, its histogram with the
compositor's band boundaries, and the yaw/pitch path of an exported clip as
image files for inspection.
"""

import matplotlib.pyplot as plt
from mpl_toolkits.axes_grid1 import make_axes_locatable
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional, Union

from utils.logger_config import get_logger

logger = get_logger(__name__)


class DepthChartGenerator:
    """Saves depth and motion charts into ``save_path_result``."""

    def __init__(self, save_path_result: Union[str, Path], figsize=(12, 7), dpi: int = 100,
                 fontsize: int = 14):
        self.save_path_result = Path(save_path_result)
        self.figsize = figsize
        self.dpi = dpi
        self.fontsize = fontsize
        self.pad_inches = 0.3
        self.fig = None
        self.ax = None

    def create_depth(self, depth: np.ndarray, photo_name: str = "depth") -> Path:
        """
        Save the depth field as a colour map (near = warm).

        Args:
            depth: (H, W) depth values in [0, 1]
            photo_name: Output file stem

        Returns:
            Path: Saved image path
        """
        self._setup_figure("x [px]", "y [px]")
        im1 = self.ax.imshow(depth, cmap=plt.cm.inferno, vmin=0.0, vmax=1.0)

        divider = make_axes_locatable(self.ax)
        cax = divider.append_axes("right", size="5%", pad=self.pad_inches)
        cbar = self.fig.colorbar(im1, cax=cax, ticks=[0.0, 0.25, 0.5, 0.75, 1.0])
        cbar.set_label("nearness", fontsize=self.fontsize)
        cbar.ax.tick_params(labelsize=self.fontsize)

        return self._save(photo_name)

    def create_depth_histogram(self, depth: np.ndarray, band_count: int,
                               photo_name: str = "depth_histogram") -> Path:
        """
        Save a histogram of depth values with the band boundaries marked.

        Args:
            depth: (H, W) depth values in [0, 1]
            band_count: Number of equal-width compositor bands
            photo_name: Output file stem

        Returns:
            Path: Saved image path
        """
        self._setup_figure("depth", "pixels")
        self.ax.hist(np.asarray(depth).ravel(), bins=64, range=(0.0, 1.0), color="steelblue")
        for boundary in np.linspace(0.0, 1.0, band_count + 1)[1:-1]:
            self.ax.axvline(boundary, color="magenta", linestyle="--", linewidth=1)
        self.ax.set_xlim(0.0, 1.0)

        return self._save(photo_name)

    def create_motion_path(self, timeline: pd.DataFrame, photo_name: str = "motion_path") -> Path:
        """
        Save yaw and pitch against time for an export timeline.

        Frames rendered without parallax are marked with crosses.

        Args:
            timeline: Frame table with timestamp, yaw, pitch and used_parallax
            photo_name: Output file stem

        Returns:
            Path: Saved image path
        """
        self._setup_figure("time [s]", "viewpoint")
        self.ax.plot(timeline["timestamp"], timeline["yaw"], label="yaw", color="tab:blue")
        self.ax.plot(timeline["timestamp"], timeline["pitch"], label="pitch", color="tab:orange")

        fallback = timeline[~timeline["used_parallax"].astype(bool)]
        if not fallback.empty:
            self.ax.scatter(fallback["timestamp"], fallback["yaw"], color="magenta", marker="x",
                            label="no parallax")
        self.ax.set_ylim(-1.05, 1.05)
        self.ax.legend(fontsize=self.fontsize)

        return self._save(photo_name)

    def _setup_figure(self, xlabel: str, ylabel: str) -> None:
        self.fig, self.ax = plt.subplots(1, 1, figsize=self.figsize, dpi=self.dpi)
        self.ax.set_xlabel(xlabel, fontsize=self.fontsize)
        self.ax.set_ylabel(ylabel, fontsize=self.fontsize)
        self.ax.tick_params(axis='both', which='major', labelsize=self.fontsize)

    def _save(self, photo_name: str, extension: Optional[str] = "png") -> Path:
        self.save_path_result.mkdir(parents=True, exist_ok=True)
        path = self.save_path_result / f"{photo_name}.{extension}"
        self.fig.savefig(path, bbox_inches='tight', pad_inches=self.pad_inches)
        plt.close(self.fig)
        self.fig, self.ax = None, None
        logger.debug(f"Saved chart {path}")
        return path
