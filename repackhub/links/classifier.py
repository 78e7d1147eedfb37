"""
Link Classifier
Decides whether a URL is a hosting, torrent, or irrelevant link
"""
import re
from typing import Iterable, Optional
from urllib.parse import unquote

from ..models.download_link import DownloadLink, LinkType
from .service_names import normalize_url, resolve_service_name, url_hostname


HOSTING_DOMAINS = (
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
    "gamedrive.org",
    "torrent.cybar.xyz",
    "buzzheavier.com",
    "datanodes.to",
    "filecrypt.co",
    "megadb.net",
    "hitfile.net",
    "ufile.io",
    "clicknupload.site",
)

# Fallback pass run on every site; excludes site domains and link containers.
GENERIC_HOSTING_DOMAINS = (
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
    "hitfile.net",
    "ufile.io",
    "clicknupload.site",
)

TORRENT_SITES = (
    "1337x.to",
    "thepiratebay.org",
    "rarbg.to",
    "kickasstorrents.to",
    "torrentgalaxy.to",
    "torrent.cybar.xyz",
    "eztv.re",
    "yts.mx",
    "torrentz2.eu",
)

TRACKER_LABELS = (
    ("1337x", "1337x"),
    ("rarbg", "RARBG"),
    ("piratebay", "PirateBay"),
    ("kickass", "KickAss"),
    ("torrentgalaxy", "TorrentGalaxy"),
)

_PLACEHOLDER_TEXT_RE = re.compile(r"\b(click|here)\b", re.IGNORECASE)
_TRACKER_PARAM_RE = re.compile(r"tr=([^&]+)")


def _tracker_label(haystack: str) -> Optional[str]:
    lowered = (haystack or "").lower()
    for needle, label in TRACKER_LABELS:
        if needle in lowered:
            return label
    return None


def _display_text(anchor_text: str, fallback: str) -> str:
    clean = " ".join((anchor_text or "").split())
    if clean and not _PLACEHOLDER_TEXT_RE.search(clean):
        return clean
    return fallback


class LinkClassifier:
    """Pure URL classification shared by every extraction rule."""

    def __init__(self, hosting_domains: Iterable[str] = HOSTING_DOMAINS, torrent_sites: Iterable[str] = TORRENT_SITES):
        self.hosting_domains = tuple(hosting_domains)
        self.torrent_sites = tuple(torrent_sites)

    def is_hosting_url(self, url: str, domains: Optional[Iterable[str]] = None) -> bool:
        domains = tuple(domains) if domains is not None else self.hosting_domains
        host = url_hostname(url)
        haystack = host if host is not None else (url or "").lower()
        return any(domain in haystack for domain in domains)

    def is_torrent_url(self, url: str) -> bool:
        value = normalize_url(url)
        if value.startswith("magnet:"):
            return True
        if ".torrent" in value:
            return True
        host = url_hostname(value)
        if host is None:
            return False
        return any(site in host for site in self.torrent_sites)

    def hosting_link(self, url: str) -> DownloadLink:
        url = normalize_url(url)
        service = resolve_service_name(url)
        return DownloadLink(type=LinkType.HOSTING, service=service, url=url, text=service)

    def classify(self, url: str, anchor_text: str = "") -> Optional[DownloadLink]:
        url = normalize_url(url)
        if not url:
            return None

        if url.startswith("magnet:"):
            label = "Magnet Link"
            match = _TRACKER_PARAM_RE.search(url)
            if match:
                tracker = _tracker_label(unquote(match.group(1)))
                if tracker:
                    label = f"Magnet Link ({tracker})"
            return DownloadLink(
                type=LinkType.TORRENT,
                service="Magnet",
                url=url,
                text=_display_text(anchor_text, label),
                torrent_info=label,
            )

        service = resolve_service_name(url)

        if ".torrent" in url:
            tracker = _tracker_label(service)
            if tracker:
                label = f"Torrent File ({tracker})"
            elif service != url:
                label = f"Torrent File ({service})"
            else:
                label = "Torrent File"
            return DownloadLink(
                type=LinkType.TORRENT,
                service="Torrent",
                url=url,
                text=_display_text(anchor_text, label),
                torrent_info=label,
            )

        if "torrent" in service.lower():
            return DownloadLink(
                type=LinkType.TORRENT,
                service=service,
                url=url,
                text=" ".join((anchor_text or "").split()) or service,
                torrent_info=f"Torrent ({service})",
            )

        if self.is_hosting_url(url):
            return self.hosting_link(url)

        return None
