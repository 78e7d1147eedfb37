"""
Service Name Resolver
Maps a link URL to a human-readable hosting service label
"""
from typing import Optional
from urllib.parse import urlparse


# Order matters: the first substring found in the hostname wins.
SERVICE_RULES = (
    ("gamedrive.org", "GameDrive"),
    ("torrent.cybar.xyz", "CybarTorrent"),
    ("freegogpcgames.com", "FreeGOG"),
    ("gdl.freegogpcgames.xyz", "FreeGOG"),
    ("mediafire", "Mediafire"),
    ("megadb", "MegaDB"),
    ("mega", "MEGA"),
    ("1fichier", "1Fichier"),
    ("rapidgator", "Rapidgator"),
    ("uploaded", "Uploaded"),
    ("turbobit", "Turbobit"),
    ("nitroflare", "Nitroflare"),
    ("katfile", "Katfile"),
    ("pixeldrain", "Pixeldrain"),
    ("gofile", "Gofile"),
    ("mixdrop", "Mixdrop"),
    ("krakenfiles", "KrakenFiles"),
    ("filefactory", "FileFactory"),
    ("dailyuploads", "DailyUploads"),
    ("multiup", "MultiUp"),
    ("zippyshare", "Zippyshare"),
    ("drive.google", "Google Drive"),
    ("dropbox", "Dropbox"),
    ("onedrive", "OneDrive"),
    ("torrent", "Torrent"),
    ("buzzheavier", "BuzzHeavier"),
    ("datanodes", "DataNodes"),
    ("filecrypt", "FileCrypt"),
    ("hitfile", "HitFile"),
    ("ufile", "UFile"),
    ("clicknupload", "ClicknUpload"),
)

# Searched in the raw string when the URL cannot be parsed.
FALLBACK_SERVICE_RULES = (
    ("megadb", "MegaDB"),
    ("buzzheavier", "BuzzHeavier"),
    ("datanodes", "DataNodes"),
    ("filecrypt", "FileCrypt"),
    ("hitfile", "HitFile"),
    ("ufile", "UFile"),
    ("clicknupload", "ClicknUpload"),
)

UNKNOWN_SERVICE = "Unknown"


def normalize_url(url: str) -> str:
    """Strip whitespace and give protocol-relative URLs an https scheme."""
    value = (url or "").strip()
    if value.startswith("//"):
        return "https:" + value
    return value


def url_hostname(url: str) -> Optional[str]:
    """Lowercased hostname, or None when the URL has no scheme/host."""
    try:
        parsed = urlparse(normalize_url(url))
        host = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    return host.lower()


def resolve_service_name(url: str) -> str:
    host = url_hostname(url)
    if host is None:
        raw = (url or "").lower()
        for needle, label in FALLBACK_SERVICE_RULES:
            if needle in raw:
                return label
        return UNKNOWN_SERVICE

    for needle, label in SERVICE_RULES:
        if needle in host:
            return label
    return host
