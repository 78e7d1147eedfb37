"""
GameDrive dialect
Most links are wrapped by the crypt.cybar.xyz service; soundtrack posts are grabbed by hand.
"""
from typing import Any, Dict, List, Optional

from ..links.rules import CryptWrapperRule, ExtractionRule, ExtrasShortCircuitRule, HostingAnchorRule
from .base import SiteDialect, SourceSite


GAMEDRIVE_HOSTERS = (
    "mediafire.com",
    "mega.nz",
    "mega.co.nz",
    "1fichier.com",
    "rapidgator.net",
    "uploaded.net",
    "turbobit.net",
    "nitroflare.com",
    "katfile.com",
    "pixeldrain.com",
    "gofile.io",
    "mixdrop.to",
    "krakenfiles.com",
    "filefactory.com",
    "dailyuploads.net",
    "multiup.io",
    "zippyshare.com",
    "drive.google.com",
    "dropbox.com",
    "onedrive.live.com",
    "1337x.to",
)


class GameDriveDialect(SiteDialect):
    DEFAULT_SITE = SourceSite(
        id="gamedrive",
        listing_endpoint="https://gamedrive.org/wp-json/wp/v2/posts",
        display_name="GameDrive",
        category_filter="3",
        max_posts_per_fetch=40,
        max_links=20,
    )

    def structural_rules(self) -> List[ExtractionRule]:
        return [ExtrasShortCircuitRule(), CryptWrapperRule()]

    def site_rules(self) -> List[ExtractionRule]:
        return [HostingAnchorRule(GAMEDRIVE_HOSTERS, name="gamedrive-hosters")]

    def structured_image(self, raw_post: Dict[str, Any]) -> Optional[str]:
        return raw_post.get("featured_image_src") or raw_post.get("jetpack_featured_media_url") or None
