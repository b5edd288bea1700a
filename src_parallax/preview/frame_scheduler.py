"""
Coalescing render scheduler for the interactive preview.

Viewpoint updates can arrive far faster than frames can be composited (slider
drags, motion sensors). The scheduler keeps a pending slot of depth one:
every request overwrites it, and a single background worker repeatedly takes
the newest viewpoint together with the current snapshot, renders it and
publishes the result. Stale intermediate viewpoints are dropped, never queued.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

from utils.logger_config import get_logger

from ..compositing.parallax_compositor import compose_snapshot
from ..data_types import PreviewSnapshot, RenderOutput, Viewpoint
from ..errors import RenderError


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RENDERING = "rendering"


class FrameScheduler:
    """Latest-wins scheduler with at most one composition in flight."""

    def __init__(
        self,
        snapshot_provider: Callable[[], Optional[PreviewSnapshot]],
        on_frame: Callable[[RenderOutput], None],
        render_fn: Optional[Callable[[PreviewSnapshot, Viewpoint], RenderOutput]] = None
    ):
        """
        Initialize the scheduler.

        Args:
            snapshot_provider: Returns the current preview snapshot (or None
                while no image is prepared); called on the worker under the
                hand-off lock
            on_frame: Receives each rendered frame (display surface hook)
            render_fn: Pure snapshot renderer (defaults to compose_snapshot)
        """
        self._snapshot_provider = snapshot_provider
        self._on_frame = on_frame
        self._render_fn = render_fn or compose_snapshot
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._pending: Optional[Viewpoint] = None
        self._state = SchedulerState.IDLE
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="parallax-preview")
        self._closed = False

        self.frames_rendered = 0
        self.render_errors = 0

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def request_render(self, viewpoint: Viewpoint) -> None:
        """
        Ask for ``viewpoint`` to be shown, superseding any pending request.

        Args:
            viewpoint: Latest requested viewpoint
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("FrameScheduler has been shut down")
            self._pending = viewpoint
            if self._state is not SchedulerState.IDLE:
                # The running loop will pick the new value up
                if self._state is SchedulerState.RENDERING:
                    self._state = SchedulerState.SCHEDULED
                return
            self._state = SchedulerState.SCHEDULED
            self._idle.clear()

        self._executor.submit(self._render_loop)

    def _render_loop(self) -> None:
        finished = False
        try:
            self._drain()
            finished = True
        except Exception as e:
            self.logger.error(f"Preview worker failed: {type(e).__name__}: {e}")
        finally:
            if not finished:
                # Leave the scheduler usable for the next request
                with self._lock:
                    self._pending = None
                    self._state = SchedulerState.IDLE
                    self._idle.set()

    def _drain(self) -> None:
        while True:
            with self._lock:
                viewpoint = self._pending
                self._pending = None
                if viewpoint is None:
                    self._state = SchedulerState.IDLE
                    self._idle.set()
                    return
                snapshot = self._snapshot_provider()
                self._state = SchedulerState.RENDERING

            if snapshot is None:
                self.logger.debug("No preview snapshot available; dropping request")
                continue

            try:
                output = self._render_fn(snapshot, viewpoint)
            except RenderError as e:
                # The next coalesced request supersedes this one
                self.render_errors += 1
                self.logger.warning(f"Preview render failed: {e}")
                continue
            except Exception as e:
                self.render_errors += 1
                self.logger.error(f"Preview render raised {type(e).__name__}: {e}")
                continue

            self.frames_rendered += 1
            try:
                self._on_frame(output)
            except Exception as e:
                self.logger.error(f"Frame consumer raised: {e}")

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no composition is pending or running.

        Returns:
            bool: False if ``timeout`` elapsed first
        """
        return self._idle.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting requests and release the worker thread."""
        with self._lock:
            self._closed = True
            self._pending = None
        self._executor.shutdown(wait=wait)
