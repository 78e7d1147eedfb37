"""
Post Transformer
Turns a raw WordPress REST post into a UnifiedPost
"""
from typing import Any, Dict, Optional
from urllib.parse import quote

from ..models.post import UnifiedPost
from ..utils.html_utils import extract_description, first_image_src, is_valid_image_url, strip_html


def _rendered(raw_post: Dict[str, Any], key: str) -> str:
    value = raw_post.get(key)
    if isinstance(value, dict):
        return str(value.get("rendered") or "")
    return str(value or "")


class PostTransformer:
    def __init__(self, scanner):
        self.scanner = scanner

    def resolve_image(self, raw_post: Dict[str, Any], dialect, worker_url: Optional[str] = None) -> Optional[str]:
        image = dialect.structured_image(raw_post)
        if not is_valid_image_url(image):
            image = first_image_src(_rendered(raw_post, "content")) or first_image_src(_rendered(raw_post, "excerpt"))
        if not image:
            return None
        proxy_domain = dialect.site.image_proxy_domain
        if worker_url and proxy_domain and proxy_domain in image:
            return f"{worker_url.rstrip('/')}/proxy-image?url={quote(image, safe='')}"
        return image

    def transform(self, raw_post: Dict[str, Any], dialect, extract_links: bool = False,
                  worker_url: Optional[str] = None) -> UnifiedPost:
        site = dialect.site
        post_link = str(raw_post.get("link") or "")
        links = []
        if extract_links and post_link:
            links = self.scanner.extract_download_links(post_link, site.id)

        content = _rendered(raw_post, "content")
        return UnifiedPost(
            id=f"{site.id}_{raw_post.get('id')}",
            original_id=raw_post.get("id"),
            title=_rendered(raw_post, "title") or "No title",
            excerpt=strip_html(_rendered(raw_post, "excerpt")),
            link=post_link,
            date=raw_post.get("date"),
            slug=str(raw_post.get("slug") or ""),
            description=extract_description(content),
            categories=list(raw_post.get("categories") or []),
            tags=list(raw_post.get("tags") or []),
            download_links=links,
            source=site.display_name,
            site_type=site.id,
            image=self.resolve_image(raw_post, dialect, worker_url),
        )
