import math
import tempfile
import threading
import unittest
from pathlib import Path

import numpy as np

from src_parallax.errors import EncoderError, ExportCancelled, ExportError
from src_parallax.export import (
    ExportOptions, MotionCurve, OpenCVVideoEncoder, VideoExporter, default_export_path, even_frame_size
)
from src_parallax.parallax_engine import ParallaxEngine
from tests.fixtures import FakeSink, gradient_image, half_split_depth, make_snapshot


class MotionCurveTests(unittest.TestCase):
    def test_endpoints_and_midpoint(self) -> None:
        for curve in MotionCurve:
            self.assertEqual(curve.apply(0.0), 0.0)
            self.assertEqual(curve.apply(1.0), 1.0)
            self.assertAlmostEqual(curve.apply(0.5), 0.5)

    def test_ease_in_out_is_smoothstep(self) -> None:
        self.assertAlmostEqual(MotionCurve.EASE_IN_OUT.apply(0.25), 0.15625)

    def test_names_from_config(self) -> None:
        self.assertIs(MotionCurve.from_name("easeInOut"), MotionCurve.EASE_IN_OUT)
        self.assertIs(MotionCurve.from_name("linear"), MotionCurve.LINEAR)
        with self.assertRaises(ValueError):
            MotionCurve.from_name("bounce")


class ExportOptionsTests(unittest.TestCase):
    def test_frame_count(self) -> None:
        self.assertEqual(ExportOptions(seconds=4.0, fps=30).total_frames, 120)
        self.assertEqual(ExportOptions(seconds=2.5, fps=1).total_frames, 3)

    def test_seconds_and_fps_are_floored(self) -> None:
        options = ExportOptions(seconds=0.1, fps=0)
        self.assertEqual(options.effective_seconds, 0.5)
        self.assertEqual(options.effective_fps, 1)
        self.assertEqual(options.total_frames, 1)

    def test_single_frame_clip_starts_at_path_origin(self) -> None:
        viewpoint = ExportOptions(seconds=0.5, fps=1).viewpoint_at(0)
        self.assertAlmostEqual(viewpoint.yaw, 0.0)
        self.assertAlmostEqual(viewpoint.pitch, 0.40)

    def test_path_is_a_closed_ellipse(self) -> None:
        options = ExportOptions(seconds=1.0, fps=5, curve=MotionCurve.LINEAR)
        first, last = options.viewpoint_at(0), options.viewpoint_at(options.total_frames - 1)
        self.assertAlmostEqual(first.yaw, last.yaw, places=9)
        self.assertAlmostEqual(first.pitch, last.pitch, places=9)
        quarter = options.viewpoint_at(1)
        self.assertAlmostEqual(quarter.yaw, 0.85 * math.sin(math.pi / 2))

    def test_consecutive_viewpoints_are_continuous(self) -> None:
        options = ExportOptions(seconds=4.0, fps=30, curve=MotionCurve.EASE_IN_OUT)
        n = options.total_frames
        # Smoothstep's slope peaks at 1.5
        bound = 1.5 * 2.0 * math.pi / (n - 1) * 0.85 + 1e-9
        for i in range(1, n):
            a, b = options.viewpoint_at(i - 1), options.viewpoint_at(i)
            self.assertLessEqual(abs(b.yaw - a.yaw), bound)
            self.assertLessEqual(abs(b.pitch - a.pitch), bound)

    def test_timestamps_are_frame_index_over_fps(self) -> None:
        options = ExportOptions(seconds=1.0, fps=24)
        self.assertEqual([options.timestamp_at(i) for i in range(3)], [0.0, 1 / 24, 2 / 24])

    def test_intensity_is_carried_on_every_viewpoint(self) -> None:
        options = ExportOptions(seconds=1.0, fps=4, base_intensity=0.3)
        self.assertTrue(all(vp.intensity == 0.3 for _, _, vp in options.iter_frames()))


class VideoExporterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.out_dir = Path(self.tmp.name)
        self.snapshot = make_snapshot(gradient_image(65, 49), half_split_depth(65, 49))
        self.options = ExportOptions(seconds=1.0, fps=8)
        self.sinks = []

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def exporter(self, **sink_kwargs) -> VideoExporter:
        def factory():
            sink = FakeSink(**sink_kwargs)
            self.sinks.append(sink)
            return sink
        return VideoExporter(sink_factory=factory, ready_timeout=1.0)

    def test_successful_export(self) -> None:
        progress = []
        destination = self.out_dir / "clip.mp4"
        result = self.exporter().export(self.snapshot, self.options, destination, on_progress=progress.append)
        sink = self.sinks[0]

        self.assertEqual(result.path, destination)
        self.assertTrue(destination.exists())
        self.assertEqual(destination.read_bytes(), b"fake-mp4")
        self.assertNotEqual(sink.path, destination)
        self.assertFalse(sink.path.exists())

        self.assertEqual(result.frame_count, 8)
        self.assertEqual(sink.timestamps, [i / 8 for i in range(8)])
        self.assertEqual(sink.frame_size, (64, 48))
        self.assertEqual(progress, sorted(progress))
        self.assertEqual(progress[-1], 1.0)
        self.assertEqual([row['index'] for row in result.timeline], list(range(8)))
        self.assertTrue(sink.finished)

    def test_back_pressure_is_waited_out(self) -> None:
        self.exporter(not_ready_polls=3).export(self.snapshot, self.options, self.out_dir / "clip.mp4")
        self.assertGreaterEqual(self.sinks[0].ready_polls, 8 + 3)
        self.assertEqual(len(self.sinks[0].timestamps), 8)

    def test_cancellation_removes_partial_output(self) -> None:
        cancel = threading.Event()

        def on_progress(fraction):
            if fraction >= 3 / 8:
                cancel.set()

        destination = self.out_dir / "clip.mp4"
        with self.assertRaises(ExportCancelled):
            self.exporter().export(self.snapshot, self.options, destination,
                                   on_progress=on_progress, cancel_event=cancel)

        self.assertTrue(self.sinks[0].cancelled)
        self.assertEqual(len(self.sinks[0].timestamps), 3)
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_cancellation_while_waiting_on_the_encoder(self) -> None:
        cancel = threading.Event()
        cancel_timer = threading.Timer(0.05, cancel.set)
        cancel_timer.start()
        try:
            with self.assertRaises(ExportCancelled):
                self.exporter(never_ready=True).export(self.snapshot, self.options, self.out_dir / "clip.mp4",
                                                       cancel_event=cancel)
        finally:
            cancel_timer.cancel()
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_encoder_failure_becomes_export_error(self) -> None:
        with self.assertRaises(ExportError):
            self.exporter(fail_at=2).export(self.snapshot, self.options, self.out_dir / "clip.mp4")
        self.assertTrue(self.sinks[0].cancelled)
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_failing_progress_callback_cleans_up_and_propagates(self) -> None:
        def on_progress(fraction):
            if fraction >= 2 / 8:
                raise RuntimeError("progress bar closed")

        with self.assertRaises(RuntimeError):
            self.exporter().export(self.snapshot, self.options, self.out_dir / "clip.mp4",
                                   on_progress=on_progress)

        self.assertTrue(self.sinks[0].cancelled)
        self.assertEqual(len(self.sinks[0].timestamps), 2)
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_encoder_that_never_becomes_ready_times_out(self) -> None:
        exporter = VideoExporter(sink_factory=lambda: FakeSink(never_ready=True), ready_timeout=0.02)
        with self.assertRaises(ExportError):
            exporter.export(self.snapshot, self.options, self.out_dir / "clip.mp4")
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_unprepared_engine_cannot_export(self) -> None:
        with self.assertRaises(ExportError):
            self.exporter().export(ParallaxEngine(), self.options, self.out_dir / "clip.mp4")

    def test_prepared_engine_exports_full_resolution(self) -> None:
        engine = ParallaxEngine()
        engine.prepare(gradient_image(96, 64))
        result = self.exporter().export(engine, ExportOptions(seconds=0.5, fps=4), self.out_dir / "clip.mp4")
        self.assertEqual(result.frame_size, (96, 64))
        self.assertEqual(self.sinks[0].frame_shapes[0], (64, 96, 3))

    def test_cancelled_is_not_an_export_error(self) -> None:
        self.assertFalse(issubclass(ExportCancelled, ExportError))

    def test_default_destination_is_unique_temp_file(self) -> None:
        first, second = default_export_path(), default_export_path()
        self.assertNotEqual(first, second)
        self.assertEqual(first.suffix, ".mp4")
        self.assertEqual(first.parent, Path(tempfile.gettempdir()))


class OpenCVEncoderTests(unittest.TestCase):
    def test_even_frame_size(self) -> None:
        self.assertEqual(even_frame_size((65, 49)), (64, 48))
        self.assertEqual(even_frame_size((64, 48)), (64, 48))

    def test_degenerate_frame_size_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            with self.assertRaises(EncoderError):
                OpenCVVideoEncoder().open(Path(tmp_dir) / "clip.mp4", (1, 1), 30)

    def test_append_before_open_raises(self) -> None:
        with self.assertRaises(EncoderError):
            OpenCVVideoEncoder().append(np.zeros((4, 4, 3), dtype=np.float32), 0.0)

    def test_writes_mp4v_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "clip.mp4"
            encoder = OpenCVVideoEncoder()
            encoder.open(path, (65, 49), 10)
            for i in range(5):
                encoder.append(np.full((49, 65, 3), i / 5.0, dtype=np.float32), i / 10.0)
            encoder.finish()

            self.assertEqual(encoder.frames_written, 5)
            self.assertGreater(path.stat().st_size, 0)

    def test_cancel_is_safe_in_any_state(self) -> None:
        encoder = OpenCVVideoEncoder()
        encoder.cancel()
        encoder.cancel()


if __name__ == "__main__":
    unittest.main()
