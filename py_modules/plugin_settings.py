"""
PowerTools Settings Management
Panel settings with validation and persistence
"""
import json
import logging
from typing import Dict, Any, Optional
from pathlib import Path

from plugin_consts import (
    AUTOMATIC_REAPPLY_WAIT,
    BACKEND_HOST,
    BACKEND_PORT,
    LOGGER_NAME,
    PERIODICAL_BACKEND_PERIOD,
    STORE_MAIN_APP_ID,
    STORE_MAIN_APP_ID_DEV,
)
from plugin_enums import ValidationError
from plugin_utils import ms_to_seconds

logger = logging.getLogger(LOGGER_NAME)


class PowerToolsSettings:
    """Centralized settings management for the PowerTools panel"""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize settings manager"""
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self.config_file = self.config_dir / "powertools_settings.json"
        self.settings_cache = {}

        # Ensure config directory exists
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Load existing settings
        self._load_settings()

    def _load_settings(self) -> None:
        """Load settings from file"""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r') as f:
                    stored = json.load(f)
                # New defaults show up for settings files written by older versions
                self.settings_cache = self._get_default_settings()
                self.settings_cache.update(stored)
                logger.info(f"Loaded settings from {self.config_file}")
            else:
                self.settings_cache = self._get_default_settings()
                self._save_settings()
                logger.info("Initialized with default settings")
        except Exception as e:
            logger.error(f"Failed to load settings: {e}")
            self.settings_cache = self._get_default_settings()

    def _save_settings(self) -> bool:
        """Save settings to file"""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.settings_cache, f, indent=2)
            return True
        except Exception as e:
            logger.error(f"Failed to save settings: {e}")
            return False

    def _get_default_settings(self) -> Dict[str, Any]:
        """Get default settings configuration"""
        return {
            # Timing (milliseconds)
            "periodical_backend_period_ms": PERIODICAL_BACKEND_PERIOD,
            "automatic_reapply_wait_ms": AUTOMATIC_REAPPLY_WAIT,

            # Backend connection
            "backend_host": BACKEND_HOST,
            "backend_port": BACKEND_PORT,

            # Community settings store
            "dev_mode": False,

            # Behaviour
            "clear_variant_loading_on_create": False,

            # Logging and debug
            "log_level": "info",
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value"""
        return self.settings_cache.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Set a setting value"""
        if not self.validate_setting(key, value):
            raise ValidationError(f"Invalid value for {key}: {value!r}")
        self.settings_cache[key] = value
        return self._save_settings()

    def update_multiple(self, settings: Dict[str, Any]) -> bool:
        """Update multiple settings at once"""
        invalid = [key for key, value in settings.items() if not self.validate_setting(key, value)]
        if invalid:
            raise ValidationError(f"Invalid values for: {', '.join(sorted(invalid))}")
        self.settings_cache.update(settings)
        return self._save_settings()

    def reset_to_defaults(self) -> bool:
        """Reset all settings to defaults"""
        self.settings_cache = self._get_default_settings()
        return self._save_settings()

    def validate_setting(self, key: str, value: Any) -> bool:
        """Validate a setting value"""
        validators = {
            "periodical_backend_period_ms": lambda v: isinstance(v, int) and not isinstance(v, bool) and v >= 100,
            "automatic_reapply_wait_ms": lambda v: isinstance(v, int) and not isinstance(v, bool) and v >= 0,
            "backend_host": lambda v: isinstance(v, str) and len(v) > 0,
            "backend_port": lambda v: isinstance(v, int) and not isinstance(v, bool) and 0 < v < 65536,
            "dev_mode": lambda v: isinstance(v, bool),
            "clear_variant_loading_on_create": lambda v: isinstance(v, bool),
            "log_level": lambda v: v in ["debug", "info", "warning", "error", "critical"],
        }

        if key in validators:
            return validators[key](value)

        return True  # No validation for unknown settings

    # Derived values

    @property
    def poll_interval(self) -> float:
        """Periodic poll interval in seconds"""
        return ms_to_seconds(self.get("periodical_backend_period_ms", PERIODICAL_BACKEND_PERIOD))

    @property
    def reapply_wait(self) -> float:
        """Delay before re-applying settings after a game action, in seconds"""
        return ms_to_seconds(self.get("automatic_reapply_wait_ms", AUTOMATIC_REAPPLY_WAIT))

    @property
    def main_app_id(self) -> str:
        """App id the community store is searched with when no game runs"""
        return STORE_MAIN_APP_ID_DEV if self.get("dev_mode", False) else STORE_MAIN_APP_ID

    @property
    def log_level(self) -> int:
        return getattr(logging, str(self.get("log_level", "info")).upper(), logging.INFO)


# Global settings instance
_settings_instance = None


def get_settings(config_dir: Optional[str] = None) -> PowerToolsSettings:
    """Get global settings instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = PowerToolsSettings(config_dir)
    return _settings_instance


def reset_settings_instance():
    """Reset the global settings instance (for testing)"""
    global _settings_instance
    _settings_instance = None
