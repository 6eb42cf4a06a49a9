"""
SemZoom configuration.

Every tunable lives in a dataclass with a sensible default. Values can be
overridden from YAML: the packaged semzoom.yaml is applied first, then an
optional user file. Only keys that exist on the dataclasses are accepted.
"""

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .layout.fit import FitConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "semzoom.yaml"


@dataclass
class CanvasConfig:
    """Size of the drawing surface in px."""
    width: int = 1200
    height: int = 1200


@dataclass
class TextConfig:
    """Font used for every box."""
    font_family: str = "Monaco"
    font_weight: str = "normal"
    line_height: float = 1.2
    char_width_ratio: float = 0.6  # fixed-width measurer: glyph width / font size


@dataclass
class NavigatorConfig:
    """Scope navigation tunables."""
    expand_threshold: float = 0.4  # scope area / canvas area below which a label is drawn
    max_value_length: int = 40  # annotation values are truncated past this
    label_source: bool = False  # collapsed labels show the call expression instead of values
    min_font_size: int = 1  # scopes whose content cannot fit at this size are not drawn


@dataclass
class ViewportConfig:
    """Initial viewport and input response."""
    initial_zoom: float = 0.5
    min_zoom: float = 0.5
    wheel_factor: float = 0.01  # zoom change per wheel delta unit


@dataclass
class StreamConfig:
    """WebSocket stream server settings."""
    host: str = "localhost"
    port: int = 8765
    max_fps: float = 30.0


@dataclass
class SemZoomConfig:
    """Top-level configuration."""
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    text: TextConfig = field(default_factory=TextConfig)
    fit: FitConfig = field(default_factory=FitConfig)
    navigator: NavigatorConfig = field(default_factory=NavigatorConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    colors_path: Optional[str] = None  # None = packaged visualization_colors.yaml


def _apply(target: Any, values: Dict[str, Any], where: str):
    """Overlay a mapping onto a (nested) dataclass instance in place."""
    known = {f.name: f for f in fields(target)}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"Unknown configuration key: {where}{key}")
        current = getattr(target, key)
        if is_dataclass(current):
            if not isinstance(value, dict):
                raise ValueError(f"Configuration section {where}{key} must be a mapping")
            _apply(current, value, f"{where}{key}.")
        else:
            setattr(target, key, value)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if path.is_symlink():
        raise ValueError(f"Configuration file cannot be a symlink: {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> SemZoomConfig:
    """
    Load configuration.

    Args:
        path: Optional user YAML file overriding the packaged defaults

    Returns:
        SemZoomConfig

    Raises:
        FileNotFoundError: If a user file was given but does not exist
        ValueError: If a file contains unknown keys or malformed sections
    """
    config = SemZoomConfig()
    if DEFAULT_CONFIG_PATH.exists():
        _apply(config, _read_yaml(DEFAULT_CONFIG_PATH), "")

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        _apply(config, _read_yaml(path), "")
        logger.debug(f"Loaded configuration overrides from {path}")

    if not 0 < config.navigator.expand_threshold <= 1:
        raise ValueError(
            f"navigator.expand_threshold must be in (0, 1], got {config.navigator.expand_threshold}"
        )
    return config
