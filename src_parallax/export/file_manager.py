"""
File management for exported clips.

Writes the per-frame timeline (CSV), the export metadata (JSON), the raw
depth field (npy) and the depth/motion charts next to each exported clip.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Any, Optional

from utils.file_operations import DataSaver, MetadataSaver
from utils.visualizer import DepthChartGenerator

from ..base import BaseFileManager
from ..data_types import DepthField
from ..settings import ParallaxTuning
from .export_options import ExportOptions
from .video_exporter import ExportResult

TIMELINE_COLUMNS = ['index', 'timestamp', 'yaw', 'pitch', 'used_parallax', 'fallback_reason']


class ExportFileManager(BaseFileManager):
    """Manages the report files written alongside an exported clip."""

    FOLDER_NAME = "exports"

    def __init__(self, base_output_path: Path):
        super().__init__(base_output_path, self.FOLDER_NAME)

    def get_folder_name(self) -> str:
        return self.FOLDER_NAME

    def clip_path(self, output_paths: Dict[str, Path], case_name: str) -> Path:
        """Destination of the clip itself."""
        return output_paths['output'] / f"{case_name}.mp4"

    @staticmethod
    def timeline_frame(result: ExportResult) -> pd.DataFrame:
        return pd.DataFrame(result.timeline, columns=TIMELINE_COLUMNS)

    def save_timeline(self, result: ExportResult, output_paths: Dict[str, Path],
                      case_name: str) -> Dict[str, bool]:
        """Save the per-frame yaw/pitch/fallback table as CSV."""
        frame = self.timeline_frame(result)
        results = {}
        for location_name, path in output_paths.items():
            success = DataSaver.save_table_csv(frame, path, f"timeline_{case_name}")
            results[f'{location_name}_timeline'] = self.record_operation(f"timeline_{case_name}", success)
        return results

    def save_depth_field(self, depth: DepthField, output_paths: Dict[str, Path],
                         case_name: str) -> Dict[str, bool]:
        results = {}
        for location_name, path in output_paths.items():
            success = DataSaver.save_numpy_array(np.asarray(depth.values), path, f"depth_{case_name}", 'npy')
            results[f'{location_name}_depth'] = self.record_operation(f"depth_{case_name}", success)
        return results

    def save_charts(self, depth: Optional[DepthField], result: Optional[ExportResult],
                    band_count: int, output_paths: Dict[str, Path]) -> Dict[str, bool]:
        """Depth map, depth histogram and motion path charts."""
        charts = DepthChartGenerator(output_paths['output'])
        results = {}
        if depth is not None:
            results['depth_chart'] = self.record_operation(
                "depth_chart", charts.create_depth(depth.values).exists())
            results['depth_histogram'] = self.record_operation(
                "depth_histogram", charts.create_depth_histogram(depth.values, band_count).exists())
        if result is not None and result.timeline:
            results['motion_chart'] = self.record_operation(
                "motion_chart", charts.create_motion_path(self.timeline_frame(result)).exists())
        return results

    @staticmethod
    def create_export_metadata(
        result: ExportResult,
        options: ExportOptions,
        tuning: ParallaxTuning,
        source_size: tuple,
        depth: Optional[DepthField] = None
    ) -> Dict[str, Any]:
        metadata = MetadataSaver.create_processing_metadata(
            source_size, result.frame_size,
            {'export': options.to_dict(), 'tuning': tuning.to_dict()},
            "parallax_export_v1.0"
        )
        metadata.update({
            'clip': str(result.path),
            'frame_count': result.frame_count,
            'fps': result.fps,
            'duration': result.duration,
            'fallback_frames': result.fallback_frames,
        })
        if depth is not None:
            metadata['depth_range'] = {
                'minimum': depth.range_info.minimum,
                'maximum': depth.range_info.maximum,
            }
        return metadata

    def save_export_report(
        self,
        result: ExportResult,
        options: ExportOptions,
        tuning: ParallaxTuning,
        source_size: tuple,
        output_paths: Dict[str, Path],
        case_name: str,
        depth: Optional[DepthField] = None,
        save_charts: bool = True,
        save_depth_outputs: bool = True
    ) -> Dict[str, bool]:
        """
        Save every report file for one export.

        ``depth`` always feeds the metadata. Pass ``save_depth_outputs=False``
        when the depth stage has already written the depth field and charts.

        Returns:
            Dict[str, bool]: Success flag per save operation
        """
        results = {}
        metadata = self.create_export_metadata(result, options, tuning, source_size, depth)
        results.update(self.save_metadata(metadata, output_paths, case_name, "export"))
        results.update(self.save_timeline(result, output_paths, case_name))
        chart_depth = depth if save_depth_outputs else None
        if chart_depth is not None:
            results.update(self.save_depth_field(chart_depth, output_paths, case_name))
        if save_charts:
            results.update(self.save_charts(chart_depth, result, tuning.band_count, output_paths))

        self.log_save_results(case_name, results)
        return results
