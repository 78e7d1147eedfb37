"""
Download Link Model
Represents one classified link found on a release post
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LinkType(Enum):
    """Kind of link a post exposes"""
    HOSTING = "hosting"
    TORRENT = "torrent"
    DIRECT = "direct"
    CRYPT = "crypt"
    FILECRYPT = "filecrypt"
    MANUAL = "manual"


@dataclass
class DownloadLink:
    """Classified download link"""
    type: LinkType
    service: str
    url: str
    text: str
    filename: Optional[str] = None
    torrent_info: Optional[str] = None
    # FileCrypt containers carry their id and need a captcha on the client side.
    id: Optional[str] = None
    requires_captcha: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "service": self.service,
            "url": self.url,
            "text": self.text,
        }
        if self.filename:
            data["filename"] = self.filename
        if self.torrent_info:
            data["torrentInfo"] = self.torrent_info
        if self.id:
            data["id"] = self.id
        if self.requires_captcha:
            data["requiresCaptcha"] = True
        return data
