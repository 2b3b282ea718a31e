"""
Configuration service for DentalReview.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/dentalreview/config.json following
the XDG Base Directory Specification.

The ConfigService instance is passed explicitly to the editor and the REST
client; nothing reads settings from module globals at call time.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from dentalreview.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "dentalreview"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "theme": "dark",
    # REST backend root, e.g. "https://review.example.com/api"
    "api_base_url": "http://localhost:5000/api",
    # Bearer token sent with every API request (empty = anonymous)
    "auth_token": "",
    # Seconds before an API request is abandoned
    "request_timeout": 30,
    # Bounding box the loaded photo is scaled down into
    "canvas_max_width": 800,
    "canvas_max_height": 600,
    # Quality factor for the exported JPEG composite (0-100)
    "jpeg_quality": 95,
    # Where offline reviews (--image) and downloaded reports are written
    "export_folder": str(Path.home() / "Documents" / "DentalReview"),
    # Console and file log level (DEBUG, INFO, WARNING, ERROR)
    "log_level": "INFO",
    "log_to_file": True,
    # Daily log files older than this are deleted at startup (0 keeps all)
    "log_retention_days": 14,
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/dentalreview/config.json
            overrides: Values applied on top of the file (not persisted
                       unless save() is called).
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

        if overrides:
            self._deep_merge(self._config, overrides)

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

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Save back so new default keys get persisted
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

        Note:
            Call save() to persist changes to disk.
        """
        self._config[key] = value
        # Never echo credentials into the log
        shown = "***" if key == "auth_token" else value
        self._logger.debug(f"Config key '{key}' set to '{shown}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Theme Settings ───────────────────────────────────────────────────

    @property
    def theme(self) -> str:
        return self.get("theme", "dark")

    # ─── Backend Settings ─────────────────────────────────────────────────

    @property
    def api_base_url(self) -> str:
        """Root URL of the review REST API."""
        return self.get("api_base_url", DEFAULT_CONFIG["api_base_url"]).rstrip("/")

    @property
    def asset_base_url(self) -> str:
        """
        Host that serves uploaded files.

        Relative image paths are resolved against the API root with its
        trailing "/api" segment removed.
        """
        base = self.api_base_url
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base

    @property
    def auth_token(self) -> str:
        return self.get("auth_token", "")

    @property
    def request_timeout(self) -> float:
        return float(self.get("request_timeout", DEFAULT_CONFIG["request_timeout"]))

    # ─── Editor Settings ──────────────────────────────────────────────────

    @property
    def canvas_max_width(self) -> int:
        return int(self.get("canvas_max_width", DEFAULT_CONFIG["canvas_max_width"]))

    @property
    def canvas_max_height(self) -> int:
        return int(self.get("canvas_max_height", DEFAULT_CONFIG["canvas_max_height"]))

    @property
    def jpeg_quality(self) -> int:
        return int(self.get("jpeg_quality", DEFAULT_CONFIG["jpeg_quality"]))

    @property
    def export_folder(self) -> Path:
        return Path(self.get("export_folder", DEFAULT_CONFIG["export_folder"]))

    # ─── Logging Settings ─────────────────────────────────────────────────

    @property
    def log_level(self) -> str:
        return str(self.get("log_level", DEFAULT_CONFIG["log_level"])).upper()

    @property
    def log_to_file(self) -> bool:
        return bool(self.get("log_to_file", DEFAULT_CONFIG["log_to_file"]))

    @property
    def log_retention_days(self) -> int:
        return int(self.get("log_retention_days", DEFAULT_CONFIG["log_retention_days"]))
