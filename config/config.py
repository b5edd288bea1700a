from typing import Dict, Any, Optional

from src_parallax.export.export_options import ExportOptions, MotionCurve
from src_parallax.settings import DepthSettings, LodSettings, ParallaxTuning
from utils.file_operations import ConfigurationManager, PathManager
from utils.logger_config import get_logger

logger = get_logger(__name__)

# Config key -> ParallaxTuning field
TUNING_KEYS = {
    "travel_fraction": "travel_fraction",
    "overscan_safety": "overscan_safety",
    "band_count": "band_count",
    "band_feather": "band_feather",
    "mask_dilate_radius": "mask_dilate_radius",
    "near_exponent": "near_exponent",
    "min_depth_range_for_parallax": "min_depth_range_for_parallax",
    "min_motion_pixels_for_parallax": "min_motion_pixels_for_parallax",
    "extend_edge_bands": "extend_edge_bands",
}

DEPTH_KEYS = {
    "mask_close_radius": "mask_close_radius",
    "mask_blur_radius": "mask_blur_radius",
    "final_blur_radius": "final_blur_radius",
    "radial_inner_fraction": "radial_inner_fraction",
    "radial_outer_fraction": "radial_outer_fraction",
}

LOD_KEYS = {
    "preview_target_longest": "preview_target_longest",
    "lod_quantum": "quantum",
    "lod_min_longest": "min_longest",
    "lod_hysteresis_px": "hysteresis_px",
    "lod_scale_hysteresis": "scale_hysteresis",
}


class Config:
    def __init__(self, config_path: Optional[str] = None, config_data: Optional[Dict[str, Any]] = None,
                 prepare_folders: bool = True):
        if config_data is None:
            if config_path is None:
                raise ValueError("Either config_path or config_data is required")
            config_data = self._load_config(config_path)
        else:
            config_data = dict(config_data)
            self._process_string_formatting(config_data)

        self.config_data = config_data
        self._init_defaults()
        self._validate()
        if prepare_folders:
            self._check_folder(self.config_data["save_path_result"])

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any], prepare_folders: bool = False) -> "Config":
        return cls(config_data=config_data, prepare_folders=prepare_folders)

    def _load_config(self, config_path: str) -> Dict[str, Any]:
        config_data = ConfigurationManager.load_config_file(config_path)

        # Process string formatting for paths that contain {case_name}
        self._process_string_formatting(config_data)
        return config_data

    def _process_string_formatting(self, config_data: Dict[str, Any]) -> None:
        """Replace {case_name} in string values with the configured case name."""
        case_name = config_data.get("case_name", "")

        for key, value in config_data.items():
            if isinstance(value, str) and "{case_name}" in value:
                try:
                    config_data[key] = value.format(case_name=case_name)
                except (KeyError, ValueError, IndexError) as e:
                    # Keep original value if formatting fails
                    logger.warning(f"Could not format value for key '{key}': {e}")

    def _init_defaults(self) -> None:
        """Fill in every key the pipeline reads. Values from the file take precedence."""
        tuning = ParallaxTuning().to_dict()
        depth = DepthSettings().to_dict()
        lod = LodSettings().to_dict()

        defaults = {
            "case_name": "parallax",
            "input_image": None,
            "result_root": "result",
            "save_path_result": self.config_data.get("case_name", "parallax"),
            "log_level": "INFO",
            "log_file": None,
            "max_input_dim": 4096,
            # Export
            "export_video": True,
            "export_seconds": 4.0,
            "export_fps": 30,
            "export_intensity": 1.0,
            "export_curve": "easeInOut",
            "yaw_amplitude": 0.85,
            "pitch_amplitude": 0.40,
            "encoder_fourcc": "mp4v",
            "ready_timeout": 10.0,
            # Reports
            "save_depth_charts": True,
            "preview_stills": [[0.0, 0.0], [1.0, 0.0], [-1.0, 0.0]],
        }
        defaults.update({key: tuning[field] for key, field in TUNING_KEYS.items()})
        defaults.update({key: depth[field] for key, field in DEPTH_KEYS.items()})
        defaults.update({key: lod[field] for key, field in LOD_KEYS.items()})

        for key, default_value in defaults.items():
            self.config_data.setdefault(key, default_value)

    def _validate(self) -> None:
        """Range checks for values the dataclasses do not cover."""
        seconds = self.config_data["export_seconds"]
        if not isinstance(seconds, (int, float)) or seconds <= 0:
            raise ValueError("export_seconds must be a positive number")

        fps = self.config_data["export_fps"]
        if not isinstance(fps, int) or fps <= 0:
            raise ValueError("export_fps must be a positive integer")

        intensity = self.config_data["export_intensity"]
        if not isinstance(intensity, (int, float)) or not 0.0 <= intensity <= 1.0:
            raise ValueError("export_intensity must be within [0, 1]")

        max_dim = self.config_data["max_input_dim"]
        if max_dim is not None and (not isinstance(max_dim, int) or max_dim <= 0):
            raise ValueError("max_input_dim must be a positive integer or null")

        # Raises ValueError on unknown names
        MotionCurve.from_name(self.config_data["export_curve"])

        # Construct once so bad tuning fails at load time
        self.get_tuning()
        self.get_depth_settings()
        self.get_lod_settings()

    def _check_folder(self, folder_name: str) -> None:
        root = self.config_data["result_root"]
        self.config_data["save_path_result"] = str(PathManager.unique_directory(root, folder_name))

    def get_tuning(self) -> ParallaxTuning:
        return ParallaxTuning(**{field: self.config_data[key] for key, field in TUNING_KEYS.items()})

    def get_depth_settings(self) -> DepthSettings:
        return DepthSettings(**{field: self.config_data[key] for key, field in DEPTH_KEYS.items()})

    def get_lod_settings(self) -> LodSettings:
        return LodSettings(**{field: self.config_data[key] for key, field in LOD_KEYS.items()})

    def get_export_options(self) -> ExportOptions:
        return ExportOptions(
            seconds=float(self.config_data["export_seconds"]),
            fps=int(self.config_data["export_fps"]),
            base_intensity=float(self.config_data["export_intensity"]),
            curve=MotionCurve.from_name(self.config_data["export_curve"]),
            yaw_amplitude=float(self.config_data["yaw_amplitude"]),
            pitch_amplitude=float(self.config_data["pitch_amplitude"]),
        )

    def get_summary(self) -> str:
        tuning = self.get_tuning()
        options = self.get_export_options()
        return (f"case={self.config_data['case_name']}, bands={tuning.band_count}, "
                f"travel={tuning.travel_fraction}, export={options.total_frames} frames "
                f"@ {options.effective_fps} fps ({options.curve.value})")

    def __getattr__(self, name: str) -> Any:
        if name == "config_data":
            raise AttributeError(name)
        if name in self.config_data:
            return self.config_data[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")
