"""
Site Dialect SDK
Per-site descriptor plus the strategy object holding that site's parsing rules.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from ..links.rules import ExtractionRule


class AccessPolicy(Enum):
    DIRECT = "direct"
    COOKIE_AUTHENTICATED = "cookie_authenticated"
    DIRECT_THEN_COOKIE_FALLBACK = "direct_then_cookie_fallback"


@dataclass(frozen=True)
class SourceSite:
    """Immutable description of one WordPress source site."""

    id: str
    listing_endpoint: str
    display_name: str
    access_policy: AccessPolicy = AccessPolicy.DIRECT
    category_filter: Optional[str] = None
    max_posts_per_fetch: int = 50
    max_links: int = 15
    image_proxy_domain: Optional[str] = None
    image_referer: Optional[str] = None


class SiteDialect:
    """
    Strategy contract for one source site.
    Subclasses set DEFAULT_SITE and override the rule hooks they need.
    """

    DEFAULT_SITE: SourceSite

    def __init__(self, site: Optional[SourceSite] = None):
        self.site = site or self.DEFAULT_SITE

    @property
    def id(self) -> str:
        return self.site.id

    @property
    def name(self) -> str:
        return self.site.display_name

    def with_overrides(self, overrides: Optional[Dict[str, Any]]) -> "SiteDialect":
        """New dialect of the same kind with descriptor fields replaced."""
        if not overrides:
            return self
        allowed = {"listing_endpoint", "display_name", "category_filter", "max_posts_per_fetch", "max_links"}
        changes = {k: v for k, v in overrides.items() if k in allowed}
        if "access_policy" in overrides:
            changes["access_policy"] = AccessPolicy(overrides["access_policy"])
        return type(self)(replace(self.site, **changes))

    def structural_rules(self) -> List[ExtractionRule]:
        """Rules run before any anchor scan; may short-circuit."""
        return []

    def site_rules(self) -> List[ExtractionRule]:
        """Anchor scans restricted to what this site is known to link to."""
        return []

    def structured_image(self, raw_post: Dict[str, Any]) -> Optional[str]:
        """Image taken from structured REST fields, before HTML fallback."""
        return None

    def listing_params(self, query: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if query:
            params["search"] = query
        params["orderby"] = "date"
        params["order"] = "desc"
        if self.site.category_filter:
            params["categories"] = self.site.category_filter
        params["per_page"] = self.site.max_posts_per_fetch
        if not query:
            params["page"] = 1
        return params

    def post_url(self, post_id: Any) -> str:
        return f"{self.site.listing_endpoint.rstrip('/')}/{post_id}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.site.id}>"
