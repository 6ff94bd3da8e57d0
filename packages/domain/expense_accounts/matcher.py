"""
Expense Account Matcher - Orchestrates expense account resolution

Flow:
1. Normalize description and destination (cache key)
2. Cache hit → return a copy, no search and no AI
3. Generate autocomplete queries, most specific first
4. Collect candidates from the first query with results
5. Token-overlap match → "existing" (source: autocomplete)
6. Otherwise the AI picks a candidate or proposes a new account

Example:
- Input: "COMPRA EN STARBUCKS MADRID 1234567890" at "Starbucks"
- Query "Starbucks" → [Starbucks Coffee (id 9)]
- Single candidate → existing account 9, no AI call
"""
from typing import Optional

import structlog

from packages.domain.expense_accounts.ai_resolver import AiAccountResolver
from packages.domain.expense_accounts.candidate_collector import (
    DEFAULT_AUTOCOMPLETE_LIMIT,
    CandidateCollector,
    ExpenseAccountSearch,
)
from packages.domain.expense_accounts.decision_cache import DecisionCache, build_cache_key
from packages.domain.expense_accounts.deterministic_matcher import match_candidates
from packages.domain.expense_accounts.errors import InvalidTransactionError
from packages.domain.expense_accounts.query_generator import generate_queries
from packages.domain.expense_accounts.schemas import (
    AccountDecision,
    AccountSource,
    DecisionType,
    ResolvedAccount,
    Transaction,
)
from packages.domain.expense_accounts.text_normalizer import is_placeholder, normalize_text
from packages.providers.base import CompletionProvider

logger = structlog.get_logger()


class ExpenseAccountMatcher:
    """
    Decide whether a transaction belongs to an existing expense account
    or needs a new one.

    Usage:
        matcher = ExpenseAccountMatcher(provider, firefly_client)
        decision = await matcher.match_transaction(
            Transaction(description="COMPRA EN STARBUCKS MADRID", destination_name="Starbucks")
        )
        if decision.is_existing:
            print(f"Use account {decision.account.id}")
    """

    def __init__(
        self,
        provider: CompletionProvider,
        search: Optional[ExpenseAccountSearch],
        autocomplete_limit: int = DEFAULT_AUTOCOMPLETE_LIMIT,
        lenient_fallback: bool = False,
        first_candidate_fallback: bool = False,
        cache: Optional[DecisionCache] = None,
    ):
        """
        Initialize matcher.

        Args:
            provider: AI completion provider
            search: Autocomplete search over expense accounts
            autocomplete_limit: Max suggestions per autocomplete query
            lenient_fallback: Accept the best partial token overlap instead of asking the AI
            first_candidate_fallback: Take the first candidate instead of asking the AI
            cache: Decision cache (a private one is created when None)
        """
        if provider is None:
            raise ValueError("ExpenseAccountMatcher requires an AI provider instance")

        self.collector = CandidateCollector(search, limit=autocomplete_limit)
        self.resolver = AiAccountResolver(provider)
        self.lenient_fallback = lenient_fallback
        self.first_candidate_fallback = first_candidate_fallback
        self.cache = cache if cache is not None else DecisionCache()

    async def match_transaction(self, transaction: Transaction) -> AccountDecision:
        """
        Resolve the expense account for a transaction.

        Args:
            transaction: Description and destination name

        Returns:
            AccountDecision ("existing" with id, or "create" with name/description)

        Raises:
            InvalidTransactionError: If the description is missing
            AiResponseError: If the AI answer is malformed
            ProviderError: If the AI backend fails
        """
        if transaction is None or not isinstance(transaction.description, str) \
                or not transaction.description.strip():
            raise InvalidTransactionError("Transaction with description is required")

        description_info = normalize_text(transaction.description)
        destination_info = normalize_text(transaction.destination_name or "")
        cache_key = build_cache_key(description_info.normalized_text, destination_info.normalized_text)

        async with self.cache.lock(cache_key):
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("expense_account_cache_hit",
                           cache_key=cache_key,
                           decision=cached.decision.value,
                           account=cached.account.name)
                return cached

            queries = generate_queries(transaction, description_info, destination_info)
            candidates = await self.collector.collect(queries)

            logger.info("expense_account_candidates_collected",
                       description=transaction.description,
                       destination=transaction.destination_name,
                       queries=len(queries),
                       candidates=len(candidates))

            matched = match_candidates(
                candidates,
                description_info.tokens,
                destination_info.tokens,
                lenient=self.lenient_fallback,
            )

            if matched is not None:
                decision = AccountDecision(
                    decision=DecisionType.EXISTING,
                    account=ResolvedAccount(
                        id=matched.id,
                        name=matched.name,
                        description=matched.description or "",
                        source=AccountSource.AUTOCOMPLETE,
                    ),
                )
            else:
                decision = self._first_candidate(candidates)
                if decision is None:
                    decision = await self.resolver.resolve(transaction, candidates)

            self.cache.put(cache_key, decision)

        logger.info("expense_account_resolved",
                   description=transaction.description,
                   decision=decision.decision.value,
                   account=decision.account.name,
                   account_id=decision.account.id,
                   source=decision.account.source.value)

        return decision

    def _first_candidate(self, candidates) -> Optional[AccountDecision]:
        """Low-confidence shortcut: first usable candidate, when enabled."""
        if not self.first_candidate_fallback:
            return None

        first = next((c for c in candidates if not is_placeholder(c.name)), None)
        if first is None:
            return None

        return AccountDecision(
            decision=DecisionType.EXISTING,
            account=ResolvedAccount(
                id=first.id,
                name=first.name,
                description=first.description or "",
                source=AccountSource.AUTOCOMPLETE_FALLBACK,
            ),
        )
