"""
FreeGOGPCGames dialect
"""
from typing import List

from ..links.rules import DirectFileRule, DownloadButtonRule, ExtractionRule, HostingAnchorRule
from .base import SiteDialect, SourceSite


FREEGOG_HOSTERS = (
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
)


class FreeGogDialect(SiteDialect):
    DEFAULT_SITE = SourceSite(
        id="freegog",
        listing_endpoint="https://freegogpcgames.com/wp-json/wp/v2/posts",
        display_name="FreeGOGPCGames",
        max_posts_per_fetch=100,
        max_links=20,
    )

    def structural_rules(self) -> List[ExtractionRule]:
        return [
            DownloadButtonRule(
                class_marker="download-btn",
                href_pattern=r"^https?://gdl\.freegogpcgames\.xyz/",
                service="FreeGOG",
                default_text="FreeGOG Download",
            )
        ]

    def site_rules(self) -> List[ExtractionRule]:
        return [
            HostingAnchorRule(FREEGOG_HOSTERS, name="freegog-hosters"),
            DirectFileRule(),
        ]
