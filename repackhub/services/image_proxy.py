"""
Image Proxy
Fetches cover images from challenge-protected sites on behalf of browsers
"""
from dataclasses import dataclass
from typing import Optional

import requests

from ..utils.html_utils import is_valid_image_url


@dataclass
class ProxiedImage:
    status_code: int
    content: bytes = b""
    content_type: str = "application/octet-stream"
    error: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and not self.error


class ImageProxy:
    """Routes an image URL through the access policy of the site that hosts it."""

    def __init__(self, settings_manager, access, registry, cache):
        self.settings = settings_manager
        self.access = access
        self.registry = registry
        self.cache = cache

    def _max_age(self) -> int:
        return int(self.settings.get("image_cache_seconds", 604800) or 604800)

    def cache_control(self) -> str:
        return f"public, max-age={self._max_age()}"

    def _owning_dialect(self, image_url: str):
        for dialect in self.registry.all():
            domain = dialect.site.image_proxy_domain
            if domain and domain in image_url:
                return dialect
        return None

    @staticmethod
    def is_acceptable(image_url: Optional[str]) -> bool:
        if not image_url:
            return False
        if not (image_url.startswith("http://") or image_url.startswith("https://")):
            return False
        return is_valid_image_url(image_url)

    def fetch(self, image_url: str) -> ProxiedImage:
        cache_key = f"image:{image_url}"
        entry = self.cache.match(cache_key)
        if entry is not None:
            return entry.payload

        dialect = self._owning_dialect(image_url)
        try:
            if dialect is not None:
                response = self.access.request(
                    image_url,
                    dialect.site,
                    str(self.settings.get("image_proxy_user_agent", "RepackHub-Image-Proxy/2.0")),
                    {"Referer": dialect.site.image_referer or image_url},
                )
            else:
                response = self.access.session.get(
                    image_url,
                    headers={
                        "Referer": "https://www.skidrowreloaded.com/",
                        "User-Agent": str(self.settings.get("image_user_agent", "Mozilla/5.0")),
                    },
                    timeout=float(self.settings.get("request_timeout_seconds", 15.0) or 15.0),
                )
        except Exception as e:
            print(f"Image proxy error ({image_url}): {e}")
            return ProxiedImage(status_code=500, error=f"Error fetching image: {e}")

        if not response.ok:
            return ProxiedImage(
                status_code=response.status_code,
                error=f"Failed to fetch image: {response.status_code} {response.reason or ''}".rstrip(),
            )

        image = ProxiedImage(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", "application/octet-stream"),
        )
        try:
            self.cache.put(cache_key, image, max_age=self._max_age())
        except Exception as e:
            print(f"Image cache store error ({image_url}): {e}")
        return image

