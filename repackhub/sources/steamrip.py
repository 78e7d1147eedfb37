"""
SteamRip dialect
Every request needs a solved clearance cookie.
"""
from typing import Any, Dict, List, Optional

from ..links.classifier import HOSTING_DOMAINS
from ..links.rules import ExtractionRule, HostingAnchorRule
from .base import AccessPolicy, SiteDialect, SourceSite


class SteamRipDialect(SiteDialect):
    DEFAULT_SITE = SourceSite(
        id="steamrip",
        listing_endpoint="https://steamrip.com/wp-json/wp/v2/posts",
        display_name="SteamRip",
        access_policy=AccessPolicy.COOKIE_AUTHENTICATED,
        max_posts_per_fetch=40,
        max_links=15,
        image_proxy_domain="steamrip.com",
        image_referer="https://steamrip.com/",
    )

    def site_rules(self) -> List[ExtractionRule]:
        return [HostingAnchorRule(HOSTING_DOMAINS, include_torrents=True, name="steamrip-anchors")]

    def structured_image(self, raw_post: Dict[str, Any]) -> Optional[str]:
        yoast = raw_post.get("yoast_head_json") or {}
        images = yoast.get("og_image") or []
        if images and isinstance(images[0], dict):
            return images[0].get("url") or None
        return None
