"""Runtime bootstrap for the RepackHub web API."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.aggregator import Aggregator
from ..core.kv_store import SqliteKVStore
from ..core.post_transformer import PostTransformer
from ..core.response_cache import CacheShell, ResponseCache
from ..core.settings_manager import SettingsManager, default_data_dir
from ..core.site_access import SiteAccessLayer
from ..links.classifier import LinkClassifier
from ..links.scanner import LinkScanner
from ..services.decrypt_client import DecryptClient
from ..services.flaresolverr_client import FlareSolverrClient
from ..services.image_proxy import ImageProxy
from ..sources import SiteRegistry


@dataclass
class RepackHubRuntime:
    """Shared service graph used by web endpoints."""

    settings: SettingsManager
    registry: SiteRegistry
    access: SiteAccessLayer
    scanner: LinkScanner
    aggregator: Aggregator
    cache_shell: CacheShell
    decrypt: DecryptClient
    images: ImageProxy


def build_runtime(data_dir: Optional[Path] = None) -> RepackHubRuntime:
    """Create and wire core services."""

    settings_dir = Path(data_dir) if data_dir is not None else default_data_dir()
    settings = SettingsManager(settings_dir)
    registry = SiteRegistry.from_settings(settings)

    solver = FlareSolverrClient(settings)
    access = SiteAccessLayer(settings, solver)
    scanner = LinkScanner(registry, LinkClassifier(), access=access)
    transformer = PostTransformer(scanner)
    aggregator = Aggregator(settings, registry, access, transformer)

    response_cache = ResponseCache(max_size=int(settings.get("cache_max_entries", 500) or 500))
    cache_shell = CacheShell(settings, response_cache)
    kv_store = SqliteKVStore(settings_dir)
    decrypt = DecryptClient(settings, kv_store, session=access.session)
    images = ImageProxy(settings, access, registry, response_cache)

    return RepackHubRuntime(
        settings=settings,
        registry=registry,
        access=access,
        scanner=scanner,
        aggregator=aggregator,
        cache_shell=cache_shell,
        decrypt=decrypt,
        images=images,
    )
