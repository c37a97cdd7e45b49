"""Configuration management package for the gateway console"""

from .loader import ConfigLoader, get_config_loader, load_alert_settings

__all__ = [
    "ConfigLoader",
    "get_config_loader",
    "load_alert_settings",
]
