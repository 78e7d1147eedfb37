from typing import Any, Dict, List, Optional

from .base import AccessPolicy, SiteDialect, SourceSite
from .freegog import FreeGogDialect
from .gamedrive import GameDriveDialect
from .skidrow import SkidrowDialect
from .steamrip import SteamRipDialect

DIALECT_CLASSES = (SkidrowDialect, FreeGogDialect, GameDriveDialect, SteamRipDialect)

# "both" predates the later sites and still means the first two.
LEGACY_BOTH_SITES = ("skidrow", "freegog")


class SiteRegistry:
    """Closed set of site dialects, keyed by site id."""

    def __init__(self, dialects: List[SiteDialect]):
        self._dialects: Dict[str, SiteDialect] = {d.id: d for d in dialects}

    @classmethod
    def from_settings(cls, settings=None) -> "SiteRegistry":
        overrides: Dict[str, Any] = {}
        if settings is not None:
            overrides = settings.get("site_overrides", {}) or {}
            if not isinstance(overrides, dict):
                overrides = {}
        dialects = []
        for dialect_cls in DIALECT_CLASSES:
            dialect = dialect_cls()
            dialects.append(dialect.with_overrides(overrides.get(dialect.id)))
        return cls(dialects)

    def get(self, site_id: str) -> Optional[SiteDialect]:
        return self._dialects.get((site_id or "").strip().lower())

    def ids(self) -> List[str]:
        return list(self._dialects.keys())

    def all(self) -> List[SiteDialect]:
        return list(self._dialects.values())

    def select(self, site_filter: Optional[str]) -> List[SiteDialect]:
        """Resolve a request's site parameter; unknown ids select nothing."""
        key = (site_filter or "").strip().lower()
        if not key or key == "all":
            return self.all()
        if key == "both":
            return [self._dialects[i] for i in LEGACY_BOTH_SITES if i in self._dialects]
        dialect = self._dialects.get(key)
        return [dialect] if dialect else []


__all__ = [
    "AccessPolicy",
    "FreeGogDialect",
    "GameDriveDialect",
    "SiteDialect",
    "SiteRegistry",
    "SkidrowDialect",
    "SourceSite",
    "SteamRipDialect",
]
