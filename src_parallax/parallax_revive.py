"""
Configured pipeline: prepare a photo, save depth outputs and preview stills,
export the look-around clip and write its report.
"""

from pathlib import Path
from typing import Dict, List, Optional

import cv2

from utils.image_processing import ImageProcessor
from utils.logger_config import get_logger

from .data_types import RenderOutput, Viewpoint
from .export import ExportFileManager, ExportResult, OpenCVVideoEncoder, VideoExporter
from .parallax_engine import ParallaxEngine
from .preview import FrameScheduler


class ParallaxRevive:
    def __init__(self, config):
        # necessary variable
        self.config = config
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self.engine = ParallaxEngine(
            tuning=config.get_tuning(),
            depth_settings=config.get_depth_settings(),
            lod_settings=config.get_lod_settings(),
            max_input_dim=config.max_input_dim,
        )
        self.file_manager = ExportFileManager(Path(config.save_path_result))
        self.output_paths: Dict[str, Path] = self.file_manager.setup_output_directories(config.case_name)
        self.export_result: Optional[ExportResult] = None
        self.preview_paths: List[Path] = []

    def create_depth(self, image_source=None):
        source = image_source if image_source is not None else self.config.input_image
        if source is None:
            raise ValueError("No input image configured (input_image)")
        self.engine.prepare(source)
        self.logger.info(f"Level of detail: {self.engine.get_lod_info()}")

        depth = self.engine.depth_field
        self.file_manager.save_depth_field(depth, self.output_paths, self.config.case_name)
        if self.config.save_depth_charts:
            self.file_manager.save_charts(depth, None, self.engine.tuning.band_count, self.output_paths)

    def create_preview_stills(self):
        """Render each configured (yaw, pitch) at preview resolution through the scheduler."""
        frames: List[RenderOutput] = []
        rendered = []
        scheduler = FrameScheduler(self.engine.make_preview_snapshot, frames.append)
        try:
            for yaw, pitch in self.config.preview_stills:
                frames.clear()
                scheduler.request_render(Viewpoint(yaw=yaw, pitch=pitch, intensity=self.config.export_intensity))
                scheduler.wait_until_idle()
                if frames:
                    rendered.append(((yaw, pitch), frames[-1]))
        finally:
            scheduler.shutdown()

        output_dir = self.output_paths['output']
        for index, ((yaw, pitch), output) in enumerate(rendered):
            path = output_dir / f"preview_{index:02d}_yaw{yaw:+.2f}_pitch{pitch:+.2f}.png"
            if cv2.imwrite(str(path), ImageProcessor.to_bgr_uint8(output.frame)):
                self.preview_paths.append(path)
            if not output.used_parallax:
                self.logger.info(f"Preview {index} without parallax: {output.fallback_reason}")
        self.logger.info(f"Saved {len(self.preview_paths)} preview stills to {output_dir}")

    def create_video(self, on_progress=None, cancel_event=None):
        fourcc = self.config.encoder_fourcc
        exporter = VideoExporter(
            sink_factory=lambda: OpenCVVideoEncoder(fourcc),
            ready_timeout=self.config.ready_timeout,
        )
        self.export_result = exporter.export(
            self.engine,
            self.config.get_export_options(),
            output_path=self.file_manager.clip_path(self.output_paths, self.config.case_name),
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    def create_report(self):
        if self.export_result is None:
            raise RuntimeError("create_video() must run before create_report()")
        return self.file_manager.save_export_report(
            self.export_result,
            self.config.get_export_options(),
            self.engine.tuning,
            self.engine.output_size,
            self.output_paths,
            self.config.case_name,
            depth=self.engine.depth_field,
            save_charts=self.config.save_depth_charts,
            save_depth_outputs=False,
        )
