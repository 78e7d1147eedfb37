"""
HTML Link Scanner
Runs a site's extraction rules, then the generic passes, over one post page.
"""
from typing import List, Optional

from ..models.download_link import DownloadLink
from .classifier import GENERIC_HOSTING_DOMAINS, LinkClassifier
from .rules import CryptWrapperRule, ExtractionRule, FileCryptRule, HostingAnchorRule, ScanContext, TorrentAnchorRule


class LinkScanner:
    """
    Pass order per page:
    1. dialect structural rules (may stop the scan)
    2. dialect site-scoped anchor rules
    3. generic hosting anchors over plain file hosts
    4. torrent and magnet anchors
    5. crypt.cybar.xyz wrappers
    6. filecrypt.co containers
    Links are deduplicated by URL and truncated to the site's cap at the end.
    """

    def __init__(self, registry, classifier: Optional[LinkClassifier] = None, access=None):
        self.registry = registry
        self.classifier = classifier or LinkClassifier()
        self.access = access
        self._generic_rules: List[ExtractionRule] = [
            HostingAnchorRule(GENERIC_HOSTING_DOMAINS, name="generic-hosting"),
            TorrentAnchorRule(),
            CryptWrapperRule(),
            FileCryptRule(),
        ]

    def rules_for(self, dialect) -> List[ExtractionRule]:
        return list(dialect.structural_rules()) + list(dialect.site_rules()) + list(self._generic_rules)

    def scan(self, html: str, site_id: str, page_url: Optional[str] = None) -> List[DownloadLink]:
        dialect = self.registry.get(site_id)
        if dialect is None or not html:
            return []
        try:
            ctx = ScanContext(html, self.classifier, page_url=page_url)
            for rule in self.rules_for(dialect):
                if rule.apply(ctx):
                    break
            return ctx.links[:dialect.site.max_links]
        except Exception as e:
            print(f"Link scan error ({dialect.name}): {e}")
            return []

    def extract_download_links(self, post_url: str, site_id: str) -> List[DownloadLink]:
        """Fetch a post's detail page and scan it; failed fetches yield no links."""
        dialect = self.registry.get(site_id)
        if dialect is None or not post_url or self.access is None:
            return []
        try:
            response = self.access.fetch(post_url, dialect.site, is_detail_page=True)
        except Exception as e:
            print(f"{dialect.name} page fetch error ({post_url}): {e}")
            return []
        if response is None:
            return []
        return self.scan(response.text, site_id, page_url=post_url)
