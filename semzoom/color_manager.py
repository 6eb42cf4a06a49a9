"""Visualization color management.

Provides centralized access to the colors used for code boxes and scope
frames, loaded from visualization_colors.yaml, with deterministic
hash-based colors for functions that have no configured color.
"""

import hashlib
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_COLORS_PATH = Path(__file__).parent / "visualization_colors.yaml"


class ColorManager:
    """Manages visualization colors from external configuration.

    Loads colors from visualization_colors.yaml (or a user file) and
    falls back to a built-in palette when the file is missing or broken.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_COLORS_PATH
        self._config: Dict = {}
        self._load_config()

    def _load_config(self):
        """Load color configuration from YAML file."""
        if not self.config_path.exists():
            logger.warning(
                f"Visualization colors config not found at {self.config_path}, "
                "using defaults"
            )
            self._config = self._get_default_config()
            return

        try:
            with open(self.config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load visualization colors: {e}")
            self._config = self._get_default_config()
            return

        # Sections missing from the file keep their defaults
        config = self._get_default_config()
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        self._config = config
        logger.debug(f"Loaded visualization colors from {self.config_path}")

    def _get_default_config(self) -> Dict:
        """Get default color configuration as fallback."""
        return {
            "code_colors": {
                "line_number": "#999999",
                "code": "#222222",
                "call": "#1f5fbf",
                "annotation": "#c0392b",
                "label": "#222222",
            },
            "frame_colors": {
                "background": "#ffffff",
                "canvas_outline": "#333333",
                "scope_outline": "#cccccc",
                "anchor_outline": "#e67e22",
            },
            "function_colors": {},
            "color_generation": {
                "saturation": 55,
                "lightness": 45,
                "hash_seed": 137.508,
            },
        }

    def get_code_color(self, element: str) -> str:
        """Get color for a code box element.

        Args:
            element: "line_number", "code", "call", "annotation" or "label"

        Returns:
            Hex color string
        """
        return self._config.get("code_colors", {}).get(element, "#222222")

    def get_frame_color(self, element: str) -> str:
        """Get color for a frame element (background, outlines)."""
        return self._config.get("frame_colors", {}).get(element, "#cccccc")

    def get_function_color(self, fun_name: str) -> str:
        """Get the outline color for scopes of a function.

        Uses a configured color if there is one, otherwise a deterministic
        color generated from the function name.
        """
        function_colors = self._config.get("function_colors") or {}
        if fun_name in function_colors:
            return function_colors[fun_name]
        return self._generate_color_from_hash(fun_name)

    def _generate_color_from_hash(self, text: str) -> str:
        """Generate a deterministic color from text using hash.

        Uses golden ratio to spread hues evenly and MD5 for determinism
        (avoiding Python's randomized hash()).
        """
        gen_config = self._config.get("color_generation", {})
        saturation = gen_config.get("saturation", 55)
        lightness = gen_config.get("lightness", 45)
        hash_seed = gen_config.get("hash_seed", 137.508)

        hash_bytes = hashlib.md5(text.encode("utf-8")).digest()
        hash_val = int.from_bytes(hash_bytes[:4], byteorder="little")
        hue = (hash_val * hash_seed) % 360

        # HSL to RGB
        c = (1 - abs(2 * lightness / 100 - 1)) * saturation / 100
        x = c * (1 - abs((hue / 60) % 2 - 1))
        m = lightness / 100 - c / 2

        if hue < 60:
            r, g, b = c, x, 0
        elif hue < 120:
            r, g, b = x, c, 0
        elif hue < 180:
            r, g, b = 0, c, x
        elif hue < 240:
            r, g, b = 0, x, c
        elif hue < 300:
            r, g, b = x, 0, c
        else:
            r, g, b = c, 0, x

        return f"#{int((r + m) * 255):02x}{int((g + m) * 255):02x}{int((b + m) * 255):02x}"

    def get_code_palette(self) -> Dict[str, str]:
        """Get all code box colors.

        Returns:
            Dictionary of element -> color
        """
        return dict(self._config.get("code_colors", {}))

    def reload(self):
        """Reload configuration from file."""
        self._load_config()


# Global instance
_color_manager: Optional[ColorManager] = None


def get_color_manager() -> ColorManager:
    """Get the global ColorManager instance (default colors file)."""
    global _color_manager
    if _color_manager is None:
        _color_manager = ColorManager()
    return _color_manager


def configure_colors(config_path: Optional[Union[str, Path]] = None) -> ColorManager:
    """Replace the global ColorManager, e.g. with a user colors file."""
    global _color_manager
    _color_manager = ColorManager(config_path)
    return _color_manager
