"""
Aggregation Result Model
Envelope returned by the recent and search endpoints
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .post import UnifiedPost


FETCH_STRATEGY_RECENT = "recent"
FETCH_STRATEGY_SEARCH = "search"


@dataclass
class SiteOutcome:
    """Result of one site's pipeline; error is empty on success"""
    site_id: str
    site_name: str
    posts: List[UnifiedPost] = field(default_factory=list)
    error: str = ""


@dataclass
class AggregationResult:
    success: bool
    fetch_strategy: str
    results: List[UnifiedPost] = field(default_factory=list)
    site_stats: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    cached: bool = False
    stale: Optional[bool] = None
    query: Optional[str] = None
    sites_searched: Optional[List[str]] = None

    @property
    def total_results(self) -> int:
        return len(self.results)

    @property
    def all_failed(self) -> bool:
        return bool(self.site_stats) and len(self.errors) >= len(self.site_stats)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.fetch_strategy == FETCH_STRATEGY_RECENT:
            data["type"] = "recent_uploads"
        if self.query is not None:
            data["query"] = self.query
        data["totalResults"] = self.total_results
        data["siteStats"] = dict(self.site_stats)
        if self.sites_searched is not None:
            data["sitesSearched"] = list(self.sites_searched)
        data["results"] = [post.to_dict() for post in self.results]
        if self.errors:
            data["errors"] = dict(self.errors)
        data["fetchStrategy"] = self.fetch_strategy
        data["cached"] = self.cached
        if self.stale is not None:
            data["stale"] = self.stale
        return data


class AggregationResultBuilder:
    """Collects site outcomes and produces the sorted envelope."""

    def __init__(self, fetch_strategy: str, query: Optional[str] = None):
        self.fetch_strategy = fetch_strategy
        self.query = query
        self._outcomes: List[SiteOutcome] = []

    def add(self, outcome: SiteOutcome) -> "AggregationResultBuilder":
        self._outcomes.append(outcome)
        return self

    @staticmethod
    def sort_posts(posts: List[UnifiedPost]) -> List[UnifiedPost]:
        """Drop undated posts; newest first, unparseable dates last."""
        dated = [post for post in posts if post.date]
        valid = [post for post in dated if post.timestamp is not None]
        invalid = [post for post in dated if post.timestamp is None]
        valid.sort(key=lambda post: post.timestamp, reverse=True)
        return valid + invalid

    def build(self) -> AggregationResult:
        merged: List[UnifiedPost] = []
        stats: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        for outcome in self._outcomes:
            merged.extend(outcome.posts)
            stats[outcome.site_name] = len(outcome.posts)
            if outcome.error:
                errors[outcome.site_name] = outcome.error

        result = AggregationResult(
            success=True,
            fetch_strategy=self.fetch_strategy,
            results=self.sort_posts(merged),
            site_stats=stats,
            errors=errors,
        )
        if self.fetch_strategy == FETCH_STRATEGY_SEARCH:
            result.query = self.query or ""
            result.sites_searched = [outcome.site_name for outcome in self._outcomes]
        return result
