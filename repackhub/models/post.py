"""
Unified Post Model
Normalized release post shared by every source site
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .download_link import DownloadLink


def parse_post_date(value: Optional[str]) -> Optional[float]:
    """Parse a WordPress date into a UTC timestamp; None when unparseable."""
    if not value or not isinstance(value, str):
        return None
    ts = value.strip()
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


@dataclass
class UnifiedPost:
    """Release post normalized across sites"""
    id: str
    original_id: Any
    title: str
    excerpt: str
    link: str
    date: Optional[str]
    slug: str
    description: str
    source: str
    site_type: str
    categories: List[Any] = field(default_factory=list)
    tags: List[Any] = field(default_factory=list)
    download_links: List[DownloadLink] = field(default_factory=list)
    image: Optional[str] = None

    @property
    def timestamp(self) -> Optional[float]:
        return parse_post_date(self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "originalId": self.original_id,
            "title": self.title,
            "excerpt": self.excerpt,
            "link": self.link,
            "date": self.date,
            "slug": self.slug,
            "description": self.description,
            "categories": list(self.categories),
            "tags": list(self.tags),
            "downloadLinks": [link.to_dict() for link in self.download_links],
            "source": self.source,
            "siteType": self.site_type,
            "image": self.image,
        }
