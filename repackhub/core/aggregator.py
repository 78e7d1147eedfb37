"""
Aggregator
Fans out to every selected site concurrently and merges their posts
"""
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional
import time
from urllib.parse import urlencode

from ..models.aggregation import (
    FETCH_STRATEGY_RECENT,
    FETCH_STRATEGY_SEARCH,
    AggregationResult,
    AggregationResultBuilder,
    SiteOutcome,
)
from ..models.post import UnifiedPost
from ..sources import SiteRegistry
from .errors import AggregationError, SiteFetchError


class Aggregator:
    """Runs one pipeline per site; a failing site never fails its siblings."""

    def __init__(self, settings_manager, registry: SiteRegistry, access, transformer):
        self.settings = settings_manager
        self.registry = registry
        self.access = access
        self.transformer = transformer
        self._executor = ThreadPoolExecutor(max_workers=10)
        self._post_executor = ThreadPoolExecutor(max_workers=16)

    def _batch_size(self) -> int:
        try:
            return max(1, int(self.settings.get("transform_batch_size", 8) or 8))
        except (TypeError, ValueError):
            return 8

    def _batch_pause(self) -> float:
        try:
            return max(0.0, float(self.settings.get("transform_batch_pause_seconds", 0.001) or 0.0))
        except (TypeError, ValueError):
            return 0.001

    def _timeout(self) -> float:
        try:
            return max(1.0, float(self.settings.get("aggregation_timeout_seconds", 60.0) or 60.0))
        except (TypeError, ValueError):
            return 60.0

    def recent(self, worker_url: Optional[str] = None) -> AggregationResult:
        return self.aggregate(FETCH_STRATEGY_RECENT, worker_url=worker_url)

    def search(self, query: str, site_filter: Optional[str] = None, worker_url: Optional[str] = None) -> AggregationResult:
        return self.aggregate(FETCH_STRATEGY_SEARCH, query=query, site_filter=site_filter, worker_url=worker_url)

    def aggregate(self, mode: str, query: Optional[str] = None, site_filter: Optional[str] = None,
                  worker_url: Optional[str] = None) -> AggregationResult:
        """
        Fetch, transform and merge posts from the selected sites.

        Args:
            mode: "recent" (no link extraction) or "search" (links extracted)
            query: search terms, search mode only
            site_filter: None/"all", "both", or a single site id; recent always uses every site

        Raises:
            AggregationError: every selected site failed
        """
        if mode == FETCH_STRATEGY_SEARCH:
            dialects = self.registry.select(site_filter)
        else:
            dialects = self.registry.all()

        builder = AggregationResultBuilder(mode, query=query)
        futures = {}
        for dialect in dialects:
            future = self._executor.submit(self._site_pipeline, dialect, mode, query, worker_url)
            futures[future] = dialect

        outcomes: Dict[str, SiteOutcome] = {}
        pending = set(futures.keys())
        deadline = time.monotonic() + self._timeout()
        while pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                dialect = futures[future]
                try:
                    outcomes[dialect.id] = future.result()
                except Exception as e:
                    print(f"Aggregation error in {dialect.name}: {e}")
                    outcomes[dialect.id] = SiteOutcome(dialect.id, dialect.name, error=str(e))

        for future in pending:
            dialect = futures[future]
            future.cancel()
            message = f"{dialect.name} timed out after {int(self._timeout())}s"
            print(message)
            outcomes[dialect.id] = SiteOutcome(dialect.id, dialect.name, error=message)

        # Keep site order stable in stats and sitesSearched.
        for dialect in dialects:
            builder.add(outcomes[dialect.id])
        result = builder.build()

        if result.all_failed:
            reasons = "; ".join(f"{name}: {error}" for name, error in result.errors.items())
            raise AggregationError(reasons)
        return result

    def _site_pipeline(self, dialect, mode: str, query: Optional[str], worker_url: Optional[str]) -> SiteOutcome:
        try:
            raw_posts = self._fetch_listing(dialect, query if mode == FETCH_STRATEGY_SEARCH else None)
            posts = self._transform_in_batches(
                raw_posts, dialect, extract_links=(mode == FETCH_STRATEGY_SEARCH), worker_url=worker_url
            )
            print(f"{dialect.name}: {len(posts)} posts ({mode})")
            return SiteOutcome(dialect.id, dialect.name, posts=posts)
        except Exception as e:
            print(f"Error fetching from {dialect.name}: {e}")
            return SiteOutcome(dialect.id, dialect.name, error=str(e))

    def _fetch_listing(self, dialect, query: Optional[str]) -> List[Dict[str, Any]]:
        params = dialect.listing_params(query)
        url = f"{dialect.site.listing_endpoint}?{urlencode(params)}"
        response = self.access.fetch(url, dialect.site)
        try:
            data = response.json()
        except ValueError as e:
            raise SiteFetchError(dialect.name, response.status_code, f"invalid JSON ({e})") from e
        if not isinstance(data, list):
            raise SiteFetchError(dialect.name, response.status_code, "unexpected listing payload")
        return data

    def _transform_in_batches(self, raw_posts: List[Dict[str, Any]], dialect, extract_links: bool,
                              worker_url: Optional[str]) -> List[UnifiedPost]:
        size = self._batch_size()
        posts: List[UnifiedPost] = []
        for start in range(0, len(raw_posts), size):
            batch = raw_posts[start:start + size]
            futures = [
                self._post_executor.submit(self.transformer.transform, raw, dialect, extract_links, worker_url)
                for raw in batch
            ]
            posts.extend(future.result() for future in futures)
            if start + size < len(raw_posts):
                time.sleep(self._batch_pause())
        return posts

    def fetch_post(self, site_id: str, post_id: str, worker_url: Optional[str] = None) -> UnifiedPost:
        """
        Fetch one post by id with its download links.

        Raises:
            KeyError: unknown site id
            SiteFetchError: the site refused or failed the request
        """
        dialect = self.registry.get(site_id)
        if dialect is None:
            raise KeyError(site_id)
        response = self.access.fetch(dialect.post_url(post_id), dialect.site)
        try:
            raw = response.json()
        except ValueError as e:
            raise SiteFetchError(dialect.name, response.status_code, f"invalid JSON ({e})") from e
        if not isinstance(raw, dict):
            raise SiteFetchError(dialect.name, response.status_code, "unexpected post payload")
        return self.transformer.transform(raw, dialect, True, worker_url)
