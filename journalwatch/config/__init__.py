"""
Configuration module
"""
from .database import *
from .settings_manager import (
    SettingsManager,
    settings,
    get_setting,
)

__all__ = [
    "TABLE_CONFIGS",
    "get_table_config",
    "get_table_columns",
    "SettingsManager",
    "settings",
    "get_setting",
]
