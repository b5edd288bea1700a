import logging
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import cv2
import json
import numpy as np
import pandas as pd

from config.config import Config
from src_parallax.export import ExportFileManager, ExportOptions, ExportResult
from src_parallax.parallax_revive import ParallaxRevive
from src_parallax.settings import ParallaxTuning
from utils.file_operations import DataSaver, PathManager
from utils.image_processing import ImageProcessor
from utils.logger_config import LoggerConfig, get_logger, stage_timer
from utils.visualizer import DepthChartGenerator
from tests.fixtures import FakeSink, gradient_image, half_split_depth


def sample_result(path: Path) -> ExportResult:
    timeline = [
        {'index': 0, 'timestamp': 0.0, 'yaw': 0.0, 'pitch': 0.4, 'used_parallax': True,
         'fallback_reason': None},
        {'index': 1, 'timestamp': 0.5, 'yaw': 0.0, 'pitch': 0.4, 'used_parallax': False,
         'fallback_reason': 'tilt too small: 0.10px of motion is below 0.50px'},
    ]
    return ExportResult(path=path, frame_count=2, fps=2, duration=1.0, frame_size=(64, 48), timeline=timeline)


class ExportFileManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.manager = ExportFileManager(Path(self.tmp.name))
        self.paths = self.manager.setup_output_directories("demo")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_output_directory_layout(self) -> None:
        self.assertEqual(self.paths['output'], Path(self.tmp.name) / "exports" / "demo")
        self.assertTrue(self.paths['output'].is_dir())
        self.assertEqual(self.manager.get_folder_name(), "exports")
        self.assertEqual(self.manager.clip_path(self.paths, "demo").name, "demo.mp4")

    def test_report_files_are_written(self) -> None:
        result = sample_result(self.paths['output'] / "demo.mp4")
        results = self.manager.save_export_report(
            result, ExportOptions(seconds=1.0, fps=2), ParallaxTuning(), (65, 49),
            self.paths, "demo", depth=half_split_depth(64, 48)
        )
        out = self.paths['output']

        self.assertTrue(all(results.values()))
        timeline = pd.read_csv(out / "timeline_demo.csv")
        self.assertEqual(list(timeline.columns),
                         ['index', 'timestamp', 'yaw', 'pitch', 'used_parallax', 'fallback_reason'])
        self.assertEqual(len(timeline), 2)

        metadata = json.loads((out / "export_demo.json").read_text(encoding='utf-8'))
        self.assertEqual(metadata['frame_count'], 2)
        self.assertEqual(metadata['fallback_frames'], 1)
        self.assertEqual(metadata['processing_params']['export']['curve'], 'ease_in_out')
        self.assertEqual(metadata['depth_range'], {'minimum': 0.0, 'maximum': 1.0})

        self.assertEqual(np.load(out / "depth_demo.npy").shape, (48, 64))
        for chart in ["depth.png", "depth_histogram.png", "motion_path.png"]:
            self.assertTrue((out / chart).exists(), chart)

        stats = self.manager.get_processing_statistics()
        self.assertEqual(stats['failed_operations'], 0)
        self.assertEqual(stats['success_rate'], 1.0)

    def test_failed_saves_are_counted(self) -> None:
        self.manager.record_operation("broken", False)
        stats = self.manager.get_processing_statistics()
        self.assertEqual(stats['failed_operations'], 1)
        self.manager.reset_processing_statistics()
        self.assertEqual(self.manager.get_processing_statistics()['total_operations'], 0)


class FileOperationTests(unittest.TestCase):
    def test_unique_directory_appends_counter(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            first = PathManager.unique_directory(Path(tmp_dir), "run")
            second = PathManager.unique_directory(Path(tmp_dir), "run")
            self.assertEqual(second.name, "run(1)")
            self.assertTrue(first.is_dir() and second.is_dir())

    def test_unsupported_array_format_reports_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            self.assertFalse(DataSaver.save_numpy_array(np.zeros(3), Path(tmp_dir), "a", "tiff"))

    def test_charts_close_their_figures(self) -> None:
        import matplotlib.pyplot as plt
        with tempfile.TemporaryDirectory() as tmp_dir:
            charts = DepthChartGenerator(tmp_dir)
            path = charts.create_depth_histogram(np.linspace(0, 1, 100).reshape(10, 10), band_count=4)
            self.assertTrue(path.exists())
        self.assertEqual(plt.get_fignums(), [])


class PipelineTests(unittest.TestCase):
    def make_config(self, tmp_dir: str) -> Config:
        image_path = Path(tmp_dir) / "photo.png"
        cv2.imwrite(str(image_path), ImageProcessor.to_bgr_uint8(gradient_image(96, 64)))
        return Config.from_dict({
            "case_name": "demo",
            "input_image": str(image_path),
            "result_root": tmp_dir,
            "save_path_result": "result_{case_name}",
            "export_seconds": 0.5,
            "export_fps": 4,
            "preview_stills": [[0.0, 0.0], [1.0, 0.0]],
        }, prepare_folders=True)

    def test_configured_pipeline_runs_end_to_end(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config = self.make_config(tmp_dir)
            with mock.patch("src_parallax.parallax_revive.OpenCVVideoEncoder", lambda fourcc: FakeSink()):
                reviver = ParallaxRevive(config)
                reviver.create_depth()
                reviver.create_preview_stills()
                reviver.create_video()
                results = reviver.create_report()

            out = reviver.output_paths['output']
            self.assertTrue(all(results.values()))
            self.assertEqual(len(reviver.preview_paths), 2)
            self.assertTrue(reviver.export_result.path.exists())
            self.assertEqual(reviver.export_result.frame_count, 2)
            self.assertTrue((out / "timeline_demo.csv").exists())
            self.assertTrue((out / "depth_demo.npy").exists())
            self.assertTrue((out / "motion_path.png").exists())

    def test_depth_outputs_are_written_by_the_depth_stage_only(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config = self.make_config(tmp_dir)
            with mock.patch("src_parallax.parallax_revive.OpenCVVideoEncoder", lambda fourcc: FakeSink()), \
                    mock.patch.object(DataSaver, "save_numpy_array", wraps=DataSaver.save_numpy_array) as npy, \
                    mock.patch.object(ExportFileManager, "save_charts", autospec=True,
                                      side_effect=ExportFileManager.save_charts) as charts:
                reviver = ParallaxRevive(config)
                reviver.create_depth()
                reviver.create_video()
                reviver.create_report()

            depth_saves = [c for c in npy.call_args_list if c.args[2] == "depth_demo"]
            self.assertEqual(len(depth_saves), len(reviver.output_paths))
            depth_chart_calls = [c for c in charts.call_args_list if c.args[1] is not None]
            self.assertEqual(len(depth_chart_calls), 1)
            self.assertEqual(len(charts.call_args_list), 2)

    def test_missing_input_image_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config = Config.from_dict({"result_root": tmp_dir}, prepare_folders=True)
            with self.assertRaises(ValueError):
                ParallaxRevive(config).create_depth()

    def test_report_requires_export(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config = Config.from_dict({"result_root": tmp_dir}, prepare_folders=True)
            with self.assertRaises(RuntimeError):
                ParallaxRevive(config).create_report()


class LoggerTests(unittest.TestCase):
    def test_module_loggers_hang_under_one_root(self) -> None:
        logger = get_logger("tests.example")
        self.assertEqual(logger.name, "parallax_revive.tests.example")
        self.assertTrue(LoggerConfig.is_configured())

    def test_stage_timer_reports_duration(self) -> None:
        logger = get_logger("tests.timer")
        with self.assertLogs("parallax_revive", level="INFO") as logs:
            with stage_timer(logger, "Depth"):
                pass
        self.assertTrue(logs.output[0].endswith("s") and "Depth finished in" in logs.output[0])

    def test_unknown_level_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LoggerConfig.configure_from_settings("LOUD")

    def test_stage_level_override(self) -> None:
        logger = get_logger("src_parallax.export.example")
        LoggerConfig.set_stage_level("export.example", logging.ERROR)
        try:
            self.assertEqual(logger.level, logging.ERROR)
        finally:
            logger.setLevel(logging.NOTSET)


if __name__ == "__main__":
    unittest.main()
