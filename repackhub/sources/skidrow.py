"""
SkidrowReloaded dialect
Release filenames live in code blocks; the site sits behind an intermittent challenge.
"""
from typing import List

from ..links.rules import CodeBlockFilenameRule, ExtractionRule, HostingAnchorRule
from .base import AccessPolicy, SiteDialect, SourceSite


class SkidrowDialect(SiteDialect):
    DEFAULT_SITE = SourceSite(
        id="skidrow",
        listing_endpoint="https://www.skidrowreloaded.com/wp-json/wp/v2/posts",
        display_name="SkidrowReloaded",
        access_policy=AccessPolicy.DIRECT_THEN_COOKIE_FALLBACK,
        max_posts_per_fetch=40,
        max_links=15,
        image_proxy_domain="skidrowreloaded.com",
        image_referer="https://www.skidrowreloaded.com/",
    )

    def structural_rules(self) -> List[ExtractionRule]:
        return [CodeBlockFilenameRule()]

    def site_rules(self) -> List[ExtractionRule]:
        return [HostingAnchorRule(include_torrents=True, name="skidrow-anchors")]
