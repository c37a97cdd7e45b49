"""Configuration loader for the gateway console

Loads configuration from multiple sources with the following priority:
1. Environment variables (highest priority)
2. .env file
3. Hardcoded defaults (lowest priority)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Set up logger for config loader
logger = logging.getLogger(__name__)

ALERT_SETTING_KEYS = ("rateLimitAlerts", "accountErrorAlerts", "soundEnabled")


class ConfigLoader:
    """Handles loading configuration from various sources"""

    def __init__(self, env_path: Optional[str] = None):
        """Initialize the config loader

        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self._load_env_file()

    def _load_env_file(self):
        """Load environment variables from .env file if it exists"""
        if self.env_path.exists():
            load_dotenv(dotenv_path=self.env_path)
            logger.debug(f"Loaded environment variables from {self.env_path}")
        else:
            logger.debug(f".env file not found at {self.env_path}, using environment variables and defaults only")

    def get(self, env_var: str, default: Any) -> Any:
        """Get a configuration value with priority: env > default

        Args:
            env_var: Environment variable name to check
            default: Default value if not found in environment

        Returns:
            The configuration value from environment or default
        """
        env_value = os.getenv(env_var)
        if env_value is None:
            if isinstance(default, str) and default.startswith("~/"):
                return str(Path(default).expanduser())
            return default

        # bool is checked first since it is a subclass of int
        if isinstance(default, bool):
            return env_value.strip().lower() in ("true", "1", "yes", "on")
        if isinstance(default, int):
            try:
                return int(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as int, using default: {default}")
                return default
        if isinstance(default, float):
            try:
                return float(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as float, using default: {default}")
                return default
        return env_value


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_alert_settings(alerts_path: Optional[str] = None) -> Dict[str, bool]:
    """Load alert preferences from a JSON file

    The file holds an object with any of ``rateLimitAlerts``,
    ``accountErrorAlerts`` and ``soundEnabled``. Unknown keys and non-boolean
    values are ignored.

    Args:
        alerts_path: Optional path to the preferences file.
                     Defaults to 'alerts.json' in the current directory.

    Returns:
        Dict of the recognised preferences. Empty if the file is missing or
        cannot be parsed.
    """
    path = Path(alerts_path).expanduser() if alerts_path else Path("alerts.json")
    path = path.resolve()

    if not path.exists():
        logger.debug(f"Alert preferences file not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse {path}: {e}")
        return {}
    except IOError as e:
        logger.error(f"Failed to read {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Invalid alert preferences in {path}: expected object, got {type(data).__name__}")
        return {}

    prefs = {}
    for key in ALERT_SETTING_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, bool):
            logger.warning(f"Ignoring alert preference {key}={value!r} in {path}: expected a boolean")
            continue
        prefs[key] = value

    logger.info(f"Loaded {len(prefs)} alert preference(s) from {path}")
    return prefs
