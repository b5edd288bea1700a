"""
Sequential full-resolution export of the look-around clip.

Frames are rendered strictly in order from the full-resolution snapshot and
handed to an encoder sink. The clip is written to a temporary file next to the
destination and only renamed into place once the sink finishes, so a cancelled
or failed export never leaves a partial file behind.
"""

import os
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from utils.logger_config import get_logger, stage_timer

from ..compositing.parallax_compositor import ParallaxCompositor
from ..data_types import PreviewSnapshot
from ..errors import EncoderError, ExportCancelled, ExportError, ParallaxError
from ..parallax_engine import ParallaxEngine
from .encoder import EncoderSink, OpenCVVideoEncoder, even_frame_size
from .export_options import ExportOptions

# Back-pressure poll interval (seconds)
READY_POLL_INTERVAL = 0.001


@dataclass
class ExportResult:
    """Outcome of a finished export."""

    path: Path
    frame_count: int
    fps: int
    duration: float
    frame_size: tuple
    timeline: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def fallback_frames(self) -> int:
        return sum(1 for entry in self.timeline if not entry['used_parallax'])


def default_export_path() -> Path:
    """Unique clip path in the system temporary directory."""
    return Path(tempfile.gettempdir()) / f"parallax-revive-{uuid.uuid4().hex}.mp4"


class VideoExporter:
    """Drives the render loop and the encoder sink for one clip at a time."""

    def __init__(
        self,
        sink_factory: Optional[Callable[[], EncoderSink]] = None,
        ready_timeout: float = 10.0
    ):
        """
        Initialize the exporter.

        Args:
            sink_factory: Creates a fresh encoder sink per export
            ready_timeout: Longest wait (seconds) on encoder back-pressure
        """
        self.sink_factory = sink_factory or OpenCVVideoEncoder
        self.ready_timeout = ready_timeout
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def export(
        self,
        source: Union[ParallaxEngine, PreviewSnapshot],
        options: ExportOptions,
        output_path: Optional[Union[str, Path]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> ExportResult:
        """
        Render and encode the elliptical look-around clip.

        Args:
            source: Prepared engine, or its full-resolution snapshot
            options: Duration, frame rate, intensity and motion curve
            output_path: Destination file (default: unique temp file)
            on_progress: Called with (i + 1) / n after each frame
            cancel_event: Set from any thread to stop at the next frame boundary

        Returns:
            ExportResult: Destination path and per-frame timeline

        Raises:
            ExportCancelled: If ``cancel_event`` was set
            ExportError: If a frame fails to render or encode
        """
        snapshot = self._resolve_snapshot(source)
        destination = Path(output_path) if output_path is not None else default_export_path()
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(f".{destination.stem}.partial{destination.suffix}")

        total = options.total_frames
        fps = options.effective_fps
        frame_size = even_frame_size(snapshot.size)
        compositor = ParallaxCompositor(snapshot.tuning)
        sink = self.sink_factory()
        timeline: List[Dict[str, Any]] = []

        self.logger.info(f"Export started: {total} frames @ {fps} fps, "
                         f"{frame_size[0]}x{frame_size[1]}, curve={options.curve.value}")
        try:
            with stage_timer(self.logger, "Export"):
                sink.open(partial, frame_size, fps)
                for index, timestamp, viewpoint in options.iter_frames():
                    self._check_cancelled(cancel_event)
                    self._wait_until_ready(sink, cancel_event)

                    output = compositor.render(
                        snapshot.source, snapshot.depth, snapshot.size, viewpoint,
                        depth_range=snapshot.depth_range
                    )
                    sink.append(output.frame, timestamp)
                    timeline.append({
                        'index': index,
                        'timestamp': timestamp,
                        'yaw': viewpoint.yaw,
                        'pitch': viewpoint.pitch,
                        'used_parallax': output.used_parallax,
                        'fallback_reason': output.fallback_reason,
                    })

                    if on_progress is not None:
                        on_progress((index + 1) / float(total))

                sink.finish()
                os.replace(partial, destination)

        except ExportCancelled:
            self._abandon(sink, partial)
            self.logger.info(f"Export cancelled after {len(timeline)}/{total} frames")
            raise
        except (EncoderError, ParallaxError) as e:
            self._abandon(sink, partial)
            self.logger.error(f"Export failed at frame {len(timeline)}/{total}: {e}")
            raise ExportError(f"Export failed at frame {len(timeline)}: {e}") from e
        except OSError as e:
            self._abandon(sink, partial)
            raise ExportError(f"Could not write {destination}: {e}") from e
        except BaseException:
            # Callback errors and interrupts propagate unchanged
            self._abandon(sink, partial)
            self.logger.error(f"Export aborted after {len(timeline)}/{total} frames")
            raise

        result = ExportResult(
            path=destination,
            frame_count=len(timeline),
            fps=fps,
            duration=len(timeline) / float(fps),
            frame_size=frame_size,
            timeline=timeline,
        )
        self.logger.info(f"Export finished: {destination} ({result.frame_count} frames, "
                         f"{result.fallback_frames} without parallax)")
        return result

    @staticmethod
    def _resolve_snapshot(source: Union[ParallaxEngine, PreviewSnapshot]) -> PreviewSnapshot:
        if isinstance(source, PreviewSnapshot):
            return source
        snapshot = source.full_snapshot()
        if snapshot is None:
            raise ExportError("Engine is not prepared; nothing to export")
        return snapshot

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ExportCancelled("Export cancelled")

    def _wait_until_ready(self, sink: EncoderSink, cancel_event: Optional[threading.Event]) -> None:
        deadline = time.monotonic() + self.ready_timeout
        while not sink.is_ready():
            self._check_cancelled(cancel_event)
            if time.monotonic() > deadline:
                raise EncoderError(f"Encoder not ready after {self.ready_timeout:.1f}s")
            time.sleep(READY_POLL_INTERVAL)

    def _abandon(self, sink: EncoderSink, partial: Path) -> None:
        try:
            sink.cancel()
        except Exception as e:
            self.logger.warning(f"Encoder cancel raised: {e}")
        if partial.exists():
            partial.unlink()
            self.logger.debug(f"Removed partial file {partial}")
