"""
Parallax engine facade.

Owns one prepared photo: its depth field, the full-resolution overscanned
source used for export, and the level-of-detail manager that feeds the
interactive preview. All configuration changes happen on the owning thread;
background work only ever sees immutable snapshots.
"""

from typing import Optional, Tuple

from utils.image_processing import ImageProcessor, ImageSource
from utils.logger_config import get_logger, stage_timer

from .compositing.overscan_builder import build_overscan
from .compositing.parallax_compositor import ParallaxCompositor, compose_snapshot
from .data_types import DepthField, PreviewSnapshot, RenderOutput, Viewpoint
from .depth.depth_synthesizer import DepthSynthesizer
from .depth.segmentation import SegmentationProvider
from .errors import ParallaxError
from .preview.lod_manager import LevelOfDetailManager
from .settings import DepthSettings, LodSettings, ParallaxTuning


class ParallaxEngine:
    """Prepares a photo once, then renders viewpoints at preview or full resolution."""

    def __init__(
        self,
        tuning: Optional[ParallaxTuning] = None,
        depth_settings: Optional[DepthSettings] = None,
        lod_settings: Optional[LodSettings] = None,
        segmentation_provider: Optional[SegmentationProvider] = None,
        max_input_dim: Optional[int] = None
    ):
        """
        Initialize the engine.

        Args:
            tuning: Compositor tuning shared by preview and export
            depth_settings: Depth synthesis settings
            lod_settings: Preview level-of-detail settings
            segmentation_provider: Optional subject mask source
            max_input_dim: Longest edge the decoded photo is limited to
        """
        self.tuning = tuning or ParallaxTuning()
        self.depth_settings = depth_settings or DepthSettings()
        self.lod_settings = lod_settings or LodSettings()
        self.segmentation_provider = segmentation_provider
        self.max_input_dim = max_input_dim

        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self._synthesizer = DepthSynthesizer(self.depth_settings)
        self._compositor = ParallaxCompositor(self.tuning)

        self._depth: Optional[DepthField] = None
        self._lod: Optional[LevelOfDetailManager] = None

    @property
    def is_prepared(self) -> bool:
        return self._lod is not None

    @property
    def output_size(self) -> Tuple[int, int]:
        self._require_prepared()
        return self._lod.output_size

    @property
    def output_aspect(self) -> float:
        width, height = self.output_size
        return width / float(height)

    @property
    def depth_field(self) -> Optional[DepthField]:
        return self._depth

    def prepare(self, image_source: ImageSource) -> DepthField:
        """
        Decode the photo and build everything the renders need.

        Args:
            image_source: File path, encoded bytes or an image array

        Returns:
            DepthField: The synthesized depth, same pixel size as the photo

        Raises:
            DecodeError: If the photo cannot be decoded
            InvalidGeometryError: If the photo is too small to overscan
        """
        self._reset()
        try:
            with stage_timer(self.logger, "Prepare"):
                image = ImageProcessor.decode_image(image_source)
                image = ImageProcessor.limit_size(image, self.max_input_dim)
                height, width = image.shape[:2]

                depth = self._synthesizer.synthesize_with_provider(image, self.segmentation_provider)
                # Providers may hand back masks at model resolution
                depth = depth.resized((width, height))

                source = build_overscan(image, self.tuning.travel_fraction, self.tuning.overscan_safety)
                full = PreviewSnapshot(
                    source=source,
                    depth=depth,
                    size=(width, height),
                    tuning=self.tuning,
                    depth_range=depth.range_info,
                )
                lod = LevelOfDetailManager(image, depth, self.tuning, self.lod_settings, full_snapshot=full)
        except ParallaxError:
            self.logger.error("Prepare failed; engine left unprepared")
            raise

        self._depth = depth
        self._lod = lod
        self.logger.info(f"Prepared {width}x{height} image, depth span {depth.depth_range:.3f}")
        return depth

    def render(self, viewpoint: Viewpoint) -> RenderOutput:
        """
        Render ``viewpoint`` at full output resolution.

        Raises:
            RuntimeError: If :meth:`prepare` has not succeeded
            RenderError: If compositing fails
        """
        self._require_prepared()
        full = self._lod.full_snapshot()
        return self._compositor.render(
            full.source, full.depth, full.size, viewpoint, depth_range=full.depth_range
        )

    def update_preview_lod(self, target_longest_px: float) -> bool:
        """
        Follow the display size; returns True when the preview pipeline was rebuilt.
        """
        self._require_prepared()
        return self._lod.update_target_resolution(target_longest_px)

    def make_preview_snapshot(self) -> Optional[PreviewSnapshot]:
        """Current preview snapshot, or None before a successful prepare."""
        if self._lod is None:
            return None
        return self._lod.current_snapshot()

    def full_snapshot(self) -> Optional[PreviewSnapshot]:
        """Full-resolution snapshot used by export, or None before prepare."""
        if self._lod is None:
            return None
        return self._lod.full_snapshot()

    @staticmethod
    def compose_preview(snapshot: PreviewSnapshot, viewpoint: Viewpoint) -> RenderOutput:
        """Render a snapshot off the owning thread; touches no engine state."""
        return compose_snapshot(snapshot, viewpoint)

    def get_lod_info(self):
        return self._lod.get_lod_info() if self._lod is not None else {}

    def _reset(self) -> None:
        self._depth = None
        self._lod = None

    def _require_prepared(self) -> None:
        if self._lod is None:
            raise RuntimeError("ParallaxEngine.prepare() must succeed before rendering")
