"""
Configuration service for TradeBoard.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/tradeboard/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from tradeboard.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "tradeboard"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Eraser radius limits in screen pixels
MIN_ERASER_SIZE = 5
MAX_ERASER_SIZE = 100

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "theme": "light",
    # View overlays
    "show_grid": False,
    "show_ruler": False,
    "show_minimap": True,
    # Eraser radius (screen pixels, 5-100)
    "eraser_size": 30,
    # Where raster snapshots are written
    "snapshot_folder": str(Path.home() / "Pictures" / "TradeBoard"),
    # Style applied to freshly drawn elements
    "default_style": {
        "stroke_color": "#000000",
        "stroke_width": 2,
        "font_size": 24,
        "font_family": "Kalam",
    },
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/tradeboard/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            # Loaded values override defaults
            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any new default keys
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Theme Settings ───────────────────────────────────────────────────

    @property
    def theme(self) -> str:
        """Get the current theme setting ("dark" or "light")."""
        return self.get("theme", "light")

    @property
    def dark_mode(self) -> bool:
        return self.theme == "dark"

    # ─── View Settings ────────────────────────────────────────────────────

    @property
    def show_grid(self) -> bool:
        return bool(self.get("show_grid", False))

    @property
    def show_ruler(self) -> bool:
        return bool(self.get("show_ruler", False))

    @property
    def show_minimap(self) -> bool:
        return bool(self.get("show_minimap", True))

    # ─── Tool Settings ────────────────────────────────────────────────────

    @property
    def eraser_size(self) -> int:
        """Get the eraser radius, clamped to the supported range."""
        value = self.get("eraser_size", DEFAULT_CONFIG["eraser_size"])
        try:
            value = int(value)
        except (TypeError, ValueError):
            return DEFAULT_CONFIG["eraser_size"]
        return max(MIN_ERASER_SIZE, min(MAX_ERASER_SIZE, value))

    @property
    def default_style(self) -> Dict[str, Any]:
        """Get the style defaults for new elements."""
        style = copy.deepcopy(DEFAULT_CONFIG["default_style"])
        configured = self.get("default_style", {})
        if isinstance(configured, dict):
            style.update(configured)
        return style

    # ─── Export Settings ──────────────────────────────────────────────────

    @property
    def snapshot_folder(self) -> str:
        """Get the folder raster snapshots are written to."""
        return self.get("snapshot_folder", DEFAULT_CONFIG["snapshot_folder"])
