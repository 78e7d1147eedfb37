"""
Decrypt Client
Resolves crypt.cybar.xyz link hashes to their target URL, with a KV cache and a fallback proxy
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import unquote

import requests

from ..links.service_names import resolve_service_name


KV_PREFIX = "decrypt:"
SOURCE_DIRECT = "direct"
SOURCE_FALLBACK = "fallback-proxy"

BROWSER_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Origin": "https://crypt.cybar.xyz",
    "Referer": "https://crypt.cybar.xyz/",
}


@dataclass
class DecryptOutcome:
    payload: Dict[str, Any]
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


def decode_hash(raw_hash: str) -> str:
    """Query strings turn '+' into spaces; restore them, then URL-decode."""
    return unquote(re.sub(r"\s", "+", raw_hash or ""))


class DecryptClient:
    def __init__(self, settings_manager, kv_store, session: Optional[requests.Session] = None):
        self.settings = settings_manager
        self.kv = kv_store
        self.session = session or requests.Session()

    def _timeout(self) -> float:
        try:
            return float(self.settings.get("request_timeout_seconds", 15.0) or 15.0)
        except (TypeError, ValueError):
            return 15.0

    def _ttl(self) -> int:
        return int(self.settings.get("decrypt_cache_ttl_seconds", 2592000) or 2592000)

    def _remember(self, key: str, data: Dict[str, Any], original_hash: str) -> None:
        try:
            self.kv.put(
                key,
                data,
                expiration_ttl=self._ttl(),
                metadata={"service": data.get("service"), "originalHash": original_hash},
            )
        except Exception as e:
            print(f"KV storage error ({key}): {e}")

    def resolve(self, raw_hash: str) -> DecryptOutcome:
        key = f"{KV_PREFIX}{raw_hash}"
        try:
            cached = self.kv.get(key)
        except Exception as e:
            print(f"KV access error ({key}): {e}")
            cached = None
        if cached:
            return DecryptOutcome(dict(cached, cached=True), headers={"X-Cache-Status": "KV-HIT"})

        try:
            data = self._decrypt_direct(raw_hash)
        except (requests.RequestException, ValueError) as direct_error:
            print(f"Direct decryption failed, trying fallback proxy: {direct_error}")
            return self._decrypt_via_fallback(raw_hash, key, direct_error)

        self._remember(key, data, data["originalHash"])
        return DecryptOutcome(data, headers={"X-Cache-Status": "KV-MISS", "X-Decrypt-Source": SOURCE_DIRECT})

    def _decrypt_direct(self, raw_hash: str) -> Dict[str, Any]:
        decoded = decode_hash(raw_hash)
        response = self.session.post(
            str(self.settings.get("decrypt_api_url", "https://crypt.cybar.xyz/api/decrypt")),
            json={"hash": decoded},
            headers=BROWSER_HEADERS,
            timeout=self._timeout(),
        )
        response.raise_for_status()
        body = response.json()
        url = body.get("resolvedUrl") or body.get("url")
        if not url:
            raise ValueError("decrypt API response carried no URL")
        return {
            "success": True,
            "originalHash": decoded,
            "url": url,
            "service": body.get("service") or resolve_service_name(url) or "Unknown",
            "source": SOURCE_DIRECT,
        }

    def _decrypt_via_fallback(self, raw_hash: str, key: str, direct_error: Exception) -> DecryptOutcome:
        try:
            response = self.session.post(
                str(self.settings.get("decrypt_fallback_url", "https://decrypt.iforgor.cc/decrypt")),
                json={"hash": raw_hash},
                headers={"Content-Type": "application/json"},
                timeout=self._timeout(),
            )
            if not response.ok:
                print(f"Fallback decrypt proxy failed: {response.status_code}")
                return DecryptOutcome(
                    {
                        "success": False,
                        "error": "Both direct decryption and fallback proxy failed",
                        "details": response.text,
                    },
                    status_code=500,
                )
            body = response.json()
        except (requests.RequestException, ValueError) as fallback_error:
            print(f"Fallback decrypt proxy error: {fallback_error}")
            return DecryptOutcome(
                {
                    "success": False,
                    "error": "Both direct decryption and fallback proxy failed",
                    "directError": str(direct_error),
                    "fallbackError": str(fallback_error),
                },
                status_code=500,
            )

        if not isinstance(body, dict) or not body.get("success"):
            return DecryptOutcome(body if isinstance(body, dict) else {"success": False}, status_code=400)

        data = dict(body, source=SOURCE_FALLBACK)
        self._remember(key, data, raw_hash)
        return DecryptOutcome(data, headers={"X-Cache-Status": "KV-MISS", "X-Decrypt-Source": SOURCE_FALLBACK})

    def clear_cache(self) -> int:
        keys = self.kv.list(KV_PREFIX)
        for key in keys:
            self.kv.delete(key)
        return len(keys)
