"""
Candidate Collector - First successful autocomplete query wins

Queries are tried in priority order. A failing query (network error,
Firefly 5xx) is logged and skipped; only running out of queries
yields an empty candidate list.
"""
from typing import List, Optional, Protocol, Sequence

import structlog

from packages.domain.expense_accounts.schemas import AccountCandidate
from packages.domain.expense_accounts.text_normalizer import is_placeholder
from packages.ledger.errors import LedgerError

logger = structlog.get_logger()

DEFAULT_AUTOCOMPLETE_LIMIT = 15


class ExpenseAccountSearch(Protocol):
    """Fuzzy search over expense accounts (FireflyClient implements this)."""

    async def search_expense_accounts(self, query: str, limit: int = 15) -> List[AccountCandidate]:
        ...


class CandidateCollector:
    """Resolve a query list against the ledger's autocomplete search."""

    def __init__(
        self,
        search: Optional[ExpenseAccountSearch],
        limit: int = DEFAULT_AUTOCOMPLETE_LIMIT,
    ):
        self.search = search
        self.limit = limit

    async def collect(self, queries: Sequence[str]) -> List[AccountCandidate]:
        """
        Return candidates from the first query that yields usable results.

        Args:
            queries: Search strings in priority order

        Returns:
            Candidates with placeholder names removed (possibly empty)
        """
        if self.search is None or not queries:
            return []

        for query in queries:
            if is_placeholder(query):
                continue

            try:
                suggestions = await self.search.search_expense_accounts(query, self.limit)
            except LedgerError as e:
                logger.warning("autocomplete_query_failed",
                              query=query,
                              error=str(e))
                continue

            candidates = [c for c in suggestions if not is_placeholder(c.name)]
            if candidates:
                logger.debug("autocomplete_matched",
                            query=query,
                            candidates=len(candidates))
                return candidates

        logger.debug("autocomplete_exhausted", queries=len(queries))
        return []
