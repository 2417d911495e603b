"""
Settings manager - reads settings.yaml

Lookup priority for every key:
1. environment variable (see ENV_VAR_MAPPING)
2. in-process override (``settings.set``)
3. settings.yaml
4. DEFAULTS
"""

import os
import yaml
from pathlib import Path
from typing import Any, Optional, List, Dict

CONFIG_DIR = Path(__file__).parent
SETTINGS_FILE_ENV = 'JOURNALWATCH_SETTINGS'


class SettingsManager:
    """Process-wide settings singleton"""

    _instance: Optional['SettingsManager'] = None
    _config: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _config_path: Path

    # yaml_key -> env var name
    ENV_VAR_MAPPING = {
        'db_path': 'JOURNALWATCH_DB_PATH',
        'request_timeout_seconds': 'JOURNALWATCH_REQUEST_TIMEOUT',
        'sources_path': 'JOURNALWATCH_SOURCES_PATH',
    }

    # env values arrive as strings
    ENV_VAR_TYPES = {
        'request_timeout_seconds': float,
    }

    DEFAULTS = {
        'db_path': 'journalwatch.db',
        'db_pool_size': 5,
        'request_timeout_seconds': 10.0,
        'activities_cache_max_age': 30,
        'stats_cache_max_age': 60,
        'max_sources': 20,
        'default_page_size': 20,
        'max_page_size': 100,
        'sources_path': str(CONFIG_DIR / 'sources.yaml'),
        'cors_origins': [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
    }

    def __new__(cls) -> 'SettingsManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        self._config_path = Path(os.getenv(SETTINGS_FILE_ENV, CONFIG_DIR / 'settings.yaml'))
        self._overrides = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load settings.yaml; a missing file just means defaults"""
        if self._config_path.exists():
            with open(self._config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}
        else:
            self._config = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value

        Args:
            key: setting name
            default: fallback used instead of DEFAULTS when given

        Returns:
            the resolved value
        """
        if key in self.ENV_VAR_MAPPING:
            env_value = os.getenv(self.ENV_VAR_MAPPING[key])
            if env_value:
                cast = self.ENV_VAR_TYPES.get(key, str)
                return cast(env_value)

        if key in self._overrides:
            return self._overrides[key]

        if key in self._config and self._config[key] is not None:
            return self._config[key]

        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def set(self, key: str, value: Any) -> None:
        """Override a setting for the lifetime of the process (not persisted)"""
        self._overrides[key] = value

    def reset_overrides(self) -> None:
        self._overrides = {}

    def reload(self) -> None:
        """Re-read settings.yaml"""
        self._load_config()

    def get_all(self) -> Dict[str, Any]:
        """All settings merged over DEFAULTS"""
        return {key: self.get(key) for key in set(self.DEFAULTS) | set(self._config)}

    # ===================== properties =====================

    @property
    def db_path(self) -> str:
        return self.get('db_path')

    @property
    def db_pool_size(self) -> int:
        return int(self.get('db_pool_size'))

    @property
    def request_timeout_seconds(self) -> float:
        return float(self.get('request_timeout_seconds'))

    @property
    def activities_cache_max_age(self) -> int:
        return int(self.get('activities_cache_max_age'))

    @property
    def stats_cache_max_age(self) -> int:
        return int(self.get('stats_cache_max_age'))

    @property
    def max_sources(self) -> int:
        return int(self.get('max_sources'))

    @property
    def default_page_size(self) -> int:
        return int(self.get('default_page_size'))

    @property
    def max_page_size(self) -> int:
        return int(self.get('max_page_size'))

    @property
    def sources_path(self) -> str:
        return self.get('sources_path')

    @property
    def cors_origins(self) -> List[str]:
        return self.get('cors_origins')


# global instance
settings = SettingsManager()


def get_setting(key: str, default: Any = None) -> Any:
    return settings.get(key, default)
