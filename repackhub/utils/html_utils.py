"""
HTML text helpers for WordPress-rendered content
"""
import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup


_TAG_RE = re.compile(r"<[^>]*>?")

# Labels that repack posts repeat verbatim in their body.
BOILERPLATE_LABELS = (
    r"Download Links",
    r"Password",
    r"Title:",
    r"Genre:",
    r"Developer:",
    r"Publisher:",
    r"Release Name:",
    r"Game Version:",
    r"Size:",
    r"Interface Language:",
    r"Audio Language:",
    r"Subtitles Language:",
    r"Crack:",
    r"Minimun:",
    r"Operating system:",
    r"CPU:",
    r"RAM:",
    r"Hard disk:",
    r"Video card:",
    r"Installation:",
    r"Game Features:",
    r"Repack Features:",
    r"Description:",
    r"Screenshots:",
)
_LABEL_RE = re.compile("|".join(BOILERPLATE_LABELS), re.IGNORECASE)

IMAGE_DENYLIST = (
    "wordpress.com/s2/images/smile/",
    "gravatar.com",
    "s.w.org/images/core/emoji/",
)


def strip_html(html: Optional[str]) -> str:
    if not html:
        return ""
    return _TAG_RE.sub("", html)


def extract_description(content: Optional[str]) -> str:
    """Body text of the entry-content container without labels, images or link markup."""
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    container = soup.find("div", class_="entry-content")
    if container is None:
        return strip_html(content).strip()

    for img in container.find_all("img"):
        img.decompose()
    for anchor in container.find_all("a"):
        anchor.unwrap()
    text = _LABEL_RE.sub("", container.get_text())
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


def is_valid_image_url(url: Optional[str], denylist: Iterable[str] = IMAGE_DENYLIST) -> bool:
    if not url or not isinstance(url, str):
        return False
    return not any(pattern in url for pattern in denylist)


def first_image_src(html: Optional[str]) -> Optional[str]:
    """First <img> src that is not an emoji or avatar placeholder."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for img in soup.find_all("img", src=True):
        src = str(img.get("src") or "").strip()
        if is_valid_image_url(src):
            return src
    return None
