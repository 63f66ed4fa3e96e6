"""Aggregator: fans a query out to every entity lookup and ranks the merge.

Data flow:
  1. Pick entity types (filters.type, else all five)
  2. Dispatch one lookup per type concurrently
  3. Concatenate partial results in type order
  4. Stable sort by score, descending
  5. Page the merged list

Pagination policies (SearchConfig.pagination):
  global    each lookup reads offset+limit rows from the start; the merged
            list is sliced [offset:offset+limit]
  per_type  each lookup reads its own limit/offset page; the merged list is
            truncated to limit (offset is not re-applied)
"""

import asyncio
import json
import logging
from collections.abc import Sequence

from talent_search.core.config import SearchConfig
from talent_search.core.schemas import ResultType, SearchFilters, SearchResult
from talent_search.pipeline.lookups import LOOKUPS
from talent_search.store.base import Contains, Has, SearchStore

logger = logging.getLogger(__name__)


class SearchService:
    """Read-only search over the marketplace entities.

    Usage::

        service = SearchService(SqliteSearchStore(conn), settings.search)
        results = await service.global_search("python", SearchFilters(type=["job"]))
    """

    def __init__(self, store: SearchStore, config: SearchConfig | None = None) -> None:
        self._store = store
        self._config = config or SearchConfig()

    async def global_search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SearchResult]:
        """Search every enabled entity type and return one ranked page.

        Args:
            query: Free text. Empty matches every eligible row.
            filters: Optional constraints; ``filters.type`` narrows the fan-out.
            limit: Page size. None uses the configured default.
            offset: Number of ranked results to skip.

        Returns:
            At most ``limit`` results, score descending.

        Raises:
            ValueError: If limit < 1 or offset < 0.
            TimeoutError: If the configured deadline elapses.
        """
        filters = filters or SearchFilters()
        if limit is None:
            limit = self._config.default_limit
        if limit < 1:
            msg = f"limit must be >= 1, got {limit}"
            raise ValueError(msg)
        if offset < 0:
            msg = f"offset must be >= 0, got {offset}"
            raise ValueError(msg)

        types = filters.enabled_types()
        per_type = self._config.pagination == "per_type"
        if per_type:
            fetch_limit, fetch_offset = limit, offset
        else:
            fetch_limit, fetch_offset = offset + limit, 0

        fan_out = self._fan_out(types, query, filters, fetch_limit, fetch_offset)
        timeout = self._config.timeout_seconds
        if timeout is None:
            partials = await fan_out
        else:
            try:
                partials = await asyncio.wait_for(fan_out, timeout)
            except TimeoutError:
                logger.error("Search '%s' exceeded %.2fs deadline", query, timeout)
                raise

        merged = [r for part in partials for r in part]
        merged.sort(key=lambda r: r.score, reverse=True)
        page = merged[:limit] if per_type else merged[offset:offset + limit]

        logger.info(
            "Search '%s' over %s: %d candidates, returning %d",
            query, ",".join(types), len(merged), len(page),
        )
        return page

    async def _fan_out(
        self,
        types: Sequence[ResultType],
        query: str,
        filters: SearchFilters,
        limit: int,
        offset: int,
    ) -> list[list[SearchResult]]:
        """Run one lookup per type; returns partial lists in ``types`` order."""
        tasks = [
            asyncio.create_task(LOOKUPS[t](self._store, query, filters, limit, offset))
            for t in types
        ]
        partial_mode = self._config.partial_results
        try:
            outcomes = await asyncio.gather(*tasks, return_exceptions=partial_mode)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        partials: list[list[SearchResult]] = []
        for result_type, outcome in zip(types, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Lookup '%s' failed, skipping: %s", result_type, outcome)
                continue
            partials.append(outcome)
        return partials

    async def get_search_suggestions(self, query: str, limit: int | None = None) -> list[str]:
        """Suggest up to ``limit`` distinct strings for a partial query.

        Sources, in priority order: job titles, organization names, and
        candidate skills. Skill rows are those holding the exact query as an
        element; their skills are then kept by case-insensitive substring.
        """
        if limit is None:
            limit = self._config.suggestion_limit
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise ValueError(msg)
        if limit == 0:
            return []

        jobs, organizations, profiles = await asyncio.gather(
            self._store.find_many(
                "job_postings", [Contains("title", query)],
                limit=limit, order_by=("-created_at", "id"), fields=("title",),
            ),
            self._store.find_many(
                "organizations", [Contains("name", query)],
                limit=limit, order_by=("-created_at", "id"), fields=("name",),
            ),
            self._store.find_many(
                "candidate_profiles",
                [Has("relevant_skills", query)],
                limit=limit * 2,
                fields=("relevant_skills",),
            ),
        )

        # dict keeps insertion order
        suggestions: dict[str, None] = {}
        for row in jobs:
            suggestions[row["title"]] = None
        for row in organizations:
            suggestions[row["name"]] = None

        query_lower = query.lower()
        for row in profiles:
            for skill in row.get("relevant_skills") or []:
                if query_lower in skill.lower():
                    suggestions[skill] = None

        return list(suggestions)[:limit]

    async def get_popular_searches(self, limit: int | None = None) -> list[str]:
        """Return the first ``limit`` configured popular searches, in order."""
        if limit is None:
            limit = self._config.popular_limit
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise ValueError(msg)
        return self._config.popular_searches[:limit]


def export_results_json(results: list[SearchResult]) -> str:
    """Export search results as a JSON string."""
    data = [r.model_dump(mode="json") for r in results]
    return json.dumps(data, indent=2, ensure_ascii=False)
