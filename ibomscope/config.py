"""Persistent application configuration stored as JSON."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Union

log = logging.getLogger(__name__)

APP_DIR_NAME = "MicroscopeIBOM"
CONFIG_FILE_NAME = "config.json"

PathLike = Union[str, "os.PathLike[str]"]


class ConfigError(Exception):
    """Raised when a configuration file cannot be read, parsed or written."""


class ScaleMethod(IntEnum):
    """Method for dynamic pixels/mm scaling when zoom changes."""

    NONE = 0  # calibration value only (fixed)
    HOMOGRAPHY = 1  # scale factor from the live tracking homography
    IBOM_PADS = 2  # computed from known iBOM pad distances


# JSON section -> {JSON key: attribute name}
_SECTIONS: dict[str, dict[str, str]] = {
    "camera": {
        "index": "camera_index",
        "width": "camera_width",
        "height": "camera_height",
        "fps": "camera_fps",
    },
    "ai": {
        "models_path": "models_path",
        "use_tensorrt": "use_tensorrt",
        "confidence": "detection_confidence",
    },
    "ui": {
        "dark_mode": "dark_mode",
        "overlay_opacity": "overlay_opacity",
        "show_pads": "show_pads",
        "show_silkscreen": "show_silkscreen",
        "show_fabrication": "show_fabrication",
    },
    "features": {
        "voice_control": "voice_control",
        "remote_view": "remote_view",
        "remote_view_port": "remote_view_port",
    },
    "tracking": {
        "interval_ms": "tracking_interval_ms",
        "orb_keypoints": "orb_keypoints",
        "min_matches": "min_match_count",
        "match_distance_ratio": "match_distance_ratio",
        "ransac_threshold": "ransac_threshold",
    },
    "calibration": {
        "board_cols": "calib_board_cols",
        "board_rows": "calib_board_rows",
        "square_size_mm": "calib_square_size",
        "scale_method": "scale_method",
    },
}


def default_config_path() -> str:
    """Return the per-user config file path, creating its directory."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        directory = Path(base) / APP_DIR_NAME if base is not None else None
    else:
        home = os.environ.get("HOME")
        directory = Path(home) / ".config" / APP_DIR_NAME if home is not None else None

    if directory is None:
        return CONFIG_FILE_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return str(directory / CONFIG_FILE_NAME)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


def _coerce(value: Any, default: Any, key: str) -> Any:
    """Convert a JSON value to the type of the current setting."""
    if isinstance(default, ScaleMethod):
        if _is_number(value):
            try:
                return ScaleMethod(int(value))
            except ValueError as exc:
                raise ConfigError(f"unknown scale method {value!r} for '{key}'") from exc
    elif isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if _is_number(value):
            return int(value)
    elif isinstance(default, float):
        if _is_number(value):
            return float(value)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    raise ConfigError(
        f"invalid value {value!r} for '{key}': expected {type(default).__name__}"
    )


@dataclass
class Config:
    """Camera, AI, UI, tracking and calibration settings."""

    # Camera
    camera_index: int = 0
    camera_width: int = 1920
    camera_height: int = 1080
    camera_fps: int = 30

    # iBOM
    ibom_file_path: str = ""

    # AI
    models_path: str = "models"
    use_tensorrt: bool = True
    detection_confidence: float = 0.5

    # UI
    dark_mode: bool = False
    overlay_opacity: float = 0.7
    show_pads: bool = True
    show_silkscreen: bool = True
    show_fabrication: bool = False

    # Features
    voice_control: bool = False
    remote_view: bool = False
    remote_view_port: int = 8080

    # Live tracking
    tracking_interval_ms: int = 200
    orb_keypoints: int = 500
    min_match_count: int = 8
    match_distance_ratio: float = 2.0
    ransac_threshold: float = 3.0

    # Calibration (inner corners of a small checkerboard card)
    calib_board_cols: int = 7
    calib_board_rows: int = 5
    calib_square_size: float = 5.0
    scale_method: ScaleMethod = ScaleMethod.HOMOGRAPHY

    # BOM
    checkbox_columns: list[str] = field(default_factory=lambda: ["Sourced", "Placed"])

    def to_dict(self) -> dict[str, Any]:
        """Return the settings in the layout of the config file."""
        data: dict[str, Any] = {}
        for section, keys in _SECTIONS.items():
            block = {}
            for key, attr in keys.items():
                value = getattr(self, attr)
                block[key] = int(value) if isinstance(value, ScaleMethod) else value
            data[section] = block
        data["ibom_file"] = self.ibom_file_path
        data["bom"] = {"checkbox_columns": list(self.checkbox_columns)}
        return data

    def update_from_dict(self, data: Any) -> None:
        """Apply settings from a config-file mapping; missing keys are left alone."""
        if not isinstance(data, dict):
            raise ConfigError("configuration root must be a JSON object")

        for section, keys in _SECTIONS.items():
            if section not in data:
                continue
            block = data[section]
            if not isinstance(block, dict):
                raise ConfigError(f"section '{section}' must be a JSON object")
            for key, attr in keys.items():
                if key in block:
                    setattr(
                        self, attr, _coerce(block[key], getattr(self, attr), f"{section}.{key}")
                    )

        if "ibom_file" in data:
            self.ibom_file_path = _coerce(data["ibom_file"], self.ibom_file_path, "ibom_file")

        bom = data.get("bom")
        if isinstance(bom, dict) and "checkbox_columns" in bom:
            columns = bom["checkbox_columns"]
            if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
                raise ConfigError("'bom.checkbox_columns' must be a list of strings")
            self.checkbox_columns = list(columns)

    def load(self, path: PathLike | None = None) -> None:
        """Load settings from ``path`` (or the default file).

        A missing file is created with the current settings.
        """
        file_path = os.fspath(path) if path else default_config_path()

        if not os.path.exists(file_path):
            log.info("No config file found at '%s', using defaults.", file_path)
            self.save(file_path)
            return

        try:
            with open(file_path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"failed to load config from '{file_path}': {exc}") from exc

        self.update_from_dict(data)
        log.info("Config loaded from '%s'", file_path)

    def save(self, path: PathLike | None = None) -> None:
        """Write the settings to ``path`` (or the default file)."""
        file_path = os.fspath(path) if path else default_config_path()
        try:
            with open(file_path, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(self.to_dict(), indent=4, sort_keys=True))
        except OSError as exc:
            raise ConfigError(f"failed to save config to '{file_path}': {exc}") from exc
        log.debug("Config saved to '%s'", file_path)