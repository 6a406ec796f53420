"""
Config Module — Settings loading and validation.
"""

from .settings import ENV_VARS, Settings, load_settings
from .validator import ConfigStatus, SettingsValidator, check_settings_on_startup

__all__ = [
    "ENV_VARS",
    "Settings",
    "load_settings",
    "ConfigStatus",
    "SettingsValidator",
    "check_settings_on_startup",
]
