"""
Source registry
Display metadata (name, color, icon) for every activity source, loaded once
from sources.yaml at startup and read-only afterwards
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

import yaml

from journalwatch.config.settings_manager import settings
from journalwatch.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SourceMetadata:
    id: str
    display_name: str
    color: Optional[str] = None
    icon: Optional[str] = None


class SourceRegistry:
    """
    Immutable source -> metadata map

    Built from the YAML file named by ``settings.sources_path`` (or the path
    given explicitly). There is no mutation API; restart to pick up changes.
    """

    def __init__(self, sources_path: Optional[str] = None):
        self._path = Path(sources_path or settings.sources_path)
        self._sources: Mapping[str, SourceMetadata] = MappingProxyType(self._load(self._path))
        logger.info(f"Source registry loaded: {len(self._sources)} sources from {self._path}")

    @staticmethod
    def _load(path: Path) -> Dict[str, SourceMetadata]:
        with open(path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}

        sources = {}
        for source_id, meta in (raw.get('sources') or {}).items():
            meta = meta or {}
            sources[str(source_id)] = SourceMetadata(
                id=str(source_id),
                display_name=meta.get('display_name') or str(source_id),
                color=meta.get('color'),
                icon=meta.get('icon'),
            )
        return sources

    def get(self, source: str) -> Optional[SourceMetadata]:
        return self._sources.get(source)

    def is_known(self, source: str) -> bool:
        return source in self._sources

    def all(self) -> Mapping[str, SourceMetadata]:
        return self._sources

    def display_name(self, source: str) -> str:
        meta = self._sources.get(source)
        return meta.display_name if meta else source


def initialize_source_registry() -> None:
    """Force loading at application startup so a broken file fails fast"""
    from journalwatch.server.providers import source_registry
    source_registry.ensure_initialized()
