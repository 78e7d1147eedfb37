"""
Extraction Rules
Named, independently testable passes that pull download links out of post HTML
"""
import re
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from bs4 import BeautifulSoup

from ..models.download_link import DownloadLink, LinkType
from .classifier import LinkClassifier
from .service_names import normalize_url


def _is_http(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


class ScanContext:
    """Mutable state for one scan: the page, its parsed tree and the accumulated links."""

    def __init__(self, html: str, classifier: LinkClassifier, page_url: Optional[str] = None):
        self.html = html or ""
        self.classifier = classifier
        self.page_url = page_url or ""
        self.links: List[DownloadLink] = []
        self._seen: Set[str] = set()
        self._soup = None

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.html, "html.parser")
        return self._soup

    def anchors(self) -> Iterator[Tuple[str, str, object]]:
        """Yield (normalized href, anchor text, tag) for every anchor with an href."""
        for tag in self.soup.find_all("a", href=True):
            href = normalize_url(str(tag.get("href") or ""))
            if not href:
                continue
            yield href, tag.get_text(" ", strip=True), tag

    def add(self, link: Optional[DownloadLink]) -> bool:
        """Append unless the URL was already recorded; first writer wins."""
        if link is None or not link.url or link.url in self._seen:
            return False
        self._seen.add(link.url)
        self.links.append(link)
        return True

    def replace_all(self, links: Iterable[DownloadLink]) -> None:
        """Discard everything collected so far; the given links are kept as-is, even without a URL."""
        self.links = list(links)
        self._seen = {link.url for link in self.links if link.url}


class ExtractionRule:
    """Base rule. apply() returns True to stop the scan after this rule."""

    name = "base"

    def apply(self, ctx: ScanContext) -> bool:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ExtrasShortCircuitRule(ExtractionRule):
    """Posts bundling extras (soundtracks) are flagged for manual grabbing."""

    name = "extras-short-circuit"
    MANUAL_TEXT = "Post contains extras, grab manually"

    def __init__(self, pattern: str = r"\b(soundtrack|mp3)\b"):
        self.pattern = re.compile(pattern, re.IGNORECASE)

    def apply(self, ctx: ScanContext) -> bool:
        if not self.pattern.search(ctx.html):
            return False
        ctx.replace_all([
            DownloadLink(
                type=LinkType.MANUAL,
                service="Manual Grab",
                url=ctx.page_url,
                text=self.MANUAL_TEXT,
            )
        ])
        return True


class CryptWrapperRule(ExtractionRule):
    name = "crypt-wrapper"
    PATTERN = re.compile(r"https?://crypt\.cybar\.xyz/(?:link)?#?([A-Za-z0-9_\-+/=]+)")
    CANONICAL = "https://crypt.cybar.xyz/link#{id}"

    def apply(self, ctx: ScanContext) -> bool:
        for match in self.PATTERN.finditer(ctx.html):
            ctx.add(DownloadLink(
                type=LinkType.CRYPT,
                service="Crypt",
                url=self.CANONICAL.format(id=match.group(1)),
                text="Encrypted Link",
            ))
        return False


class FileCryptRule(ExtractionRule):
    name = "filecrypt"
    PATTERN = re.compile(r"https?://filecrypt\.co/(?:Container|Link)/([A-Z0-9]+)", re.IGNORECASE)

    def apply(self, ctx: ScanContext) -> bool:
        for match in self.PATTERN.finditer(ctx.html):
            ctx.add(DownloadLink(
                type=LinkType.FILECRYPT,
                service="FileCrypt",
                url=match.group(0),
                text="FileCrypt (Requires CAPTCHA)",
                id=match.group(1),
                requires_captcha=True,
            ))
        return False


class CodeBlockFilenameRule(ExtractionRule):
    """Styled code blocks hold a release filename; the anchor before them holds its link."""

    name = "code-block-filename"

    def apply(self, ctx: ScanContext) -> bool:
        for block in ctx.soup.find_all("div", class_="codecolorer-container"):
            name_div = block.select_one("div.text.codecolorer")
            if name_div is None:
                continue
            filename = name_div.get_text(strip=True)
            if not filename or "Uploading" in filename or len(filename) <= 3:
                continue
            anchor = block.find_previous("a", href=True)
            if anchor is None:
                continue
            url = normalize_url(str(anchor.get("href") or ""))
            if not _is_http(url) or not ctx.classifier.is_hosting_url(url):
                continue
            link = ctx.classifier.hosting_link(url)
            link.filename = filename
            link.text = f"{link.service} - {filename}"
            ctx.add(link)
        return False


class DownloadButtonRule(ExtractionRule):
    """Anchors styled as download buttons pointing at a site's own file host."""

    name = "download-button"

    def __init__(self, class_marker: str, href_pattern: str, service: str, default_text: str):
        self.class_marker = class_marker
        self.href_pattern = re.compile(href_pattern, re.IGNORECASE)
        self.service = service
        self.default_text = default_text

    def apply(self, ctx: ScanContext) -> bool:
        for href, text, tag in ctx.anchors():
            classes = " ".join(tag.get("class") or [])
            if self.class_marker not in classes or not self.href_pattern.search(href):
                continue
            ctx.add(DownloadLink(
                type=LinkType.DIRECT,
                service=self.service,
                url=href,
                text=text or self.default_text,
            ))
        return False


class HostingAnchorRule(ExtractionRule):
    """Anchors whose host is on an allow-list become hosting links."""

    name = "hosting-anchors"

    def __init__(self, domains: Optional[Iterable[str]] = None, include_torrents: bool = False, name: Optional[str] = None):
        self.domains = tuple(domains) if domains is not None else None
        self.include_torrents = include_torrents
        if name:
            self.name = name

    def apply(self, ctx: ScanContext) -> bool:
        for href, text, _ in ctx.anchors():
            if _is_http(href) and ctx.classifier.is_hosting_url(href, self.domains):
                ctx.add(ctx.classifier.hosting_link(href))
            elif self.include_torrents and ctx.classifier.is_torrent_url(href):
                ctx.add(ctx.classifier.classify(href, text))
        return False


class DirectFileRule(ExtractionRule):
    """Allow-listed links that point straight at an archive or disc image."""

    name = "direct-files"
    PATTERN = re.compile(r"\.(?:exe|zip|rar|7z|iso|bin|cue|mdf|mds)\b", re.IGNORECASE)

    def apply(self, ctx: ScanContext) -> bool:
        for href, text, _ in ctx.anchors():
            if not _is_http(href) or not self.PATTERN.search(href):
                continue
            if not ctx.classifier.is_hosting_url(href):
                continue
            ctx.add(DownloadLink(
                type=LinkType.DIRECT,
                service="Direct Download",
                url=href,
                text=text or "Direct Download",
            ))
        return False


class TorrentAnchorRule(ExtractionRule):
    name = "torrent-anchors"

    def apply(self, ctx: ScanContext) -> bool:
        for href, text, _ in ctx.anchors():
            if href.startswith("magnet:") or (_is_http(href) and ".torrent" in href):
                ctx.add(ctx.classifier.classify(href, text))
        return False
