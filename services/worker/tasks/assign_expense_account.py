"""
Expense account assignment task

Flow:
1. Fetch the transaction from Firefly III
2. Resolve the expense account from the first split (matcher: cache →
   autocomplete → token overlap → AI)
3. Create the account if needed (duplicate names recovered by lookup)
4. Set it as the destination account of every split

A failure at any step fails the job; nothing is written to the ledger
before the decision is complete.
"""
from typing import Any, Dict, Optional, Tuple

import structlog

from services.worker.celery_app import app, run_in_worker_loop
from packages.common.config import get_settings
from packages.domain.expense_accounts import (
    ExpenseAccountMatcher,
    ExpenseAccountService,
    Transaction,
)
from packages.ledger.firefly_client import FireflyClient
from packages.providers import create_provider_from_config

logger = structlog.get_logger()

# Built on first use; the matcher's decision cache then lives for the worker process
_components: Optional[Tuple[ExpenseAccountMatcher, ExpenseAccountService]] = None


def get_components() -> Tuple[ExpenseAccountMatcher, ExpenseAccountService]:
    """Matcher and service wired from settings (singleton per process)."""
    global _components

    if _components is None:
        settings = get_settings()
        firefly = FireflyClient.from_settings(settings)
        matcher = ExpenseAccountMatcher(
            provider=create_provider_from_config(settings),
            search=firefly,
            autocomplete_limit=settings.autocomplete_limit,
            lenient_fallback=settings.matcher_lenient_fallback,
            first_candidate_fallback=settings.matcher_first_candidate_fallback,
        )
        _components = (matcher, ExpenseAccountService(firefly))

        logger.info("expense_account_components_created",
                   ai_provider=settings.ai_provider,
                   lenient_fallback=settings.matcher_lenient_fallback,
                   first_candidate_fallback=settings.matcher_first_candidate_fallback)

    return _components


async def assign_expense_account(
    transaction_id: str,
    ledger: FireflyClient,
    matcher: ExpenseAccountMatcher,
    service: ExpenseAccountService,
) -> Dict[str, Any]:
    """
    Resolve and assign the expense account for one Firefly transaction.

    Args:
        transaction_id: Firefly transaction group ID
        ledger: Firefly client used to fetch the transaction
        matcher: Expense account matcher
        service: Service applying the decision

    Returns:
        Summary dict with decision, account id/name and source
    """
    payload = await ledger.get_transaction(transaction_id)
    data = payload.get("data") or {}
    splits = (data.get("attributes") or {}).get("transactions") or []

    if not splits:
        raise ValueError(f"Transaction {transaction_id} has no splits")

    primary = splits[0]
    transaction = Transaction(
        description=primary.get("description"),
        destination_name=primary.get("destination_name"),
    )

    decision = await matcher.match_transaction(transaction)
    account_id = await service.apply_decision(str(data.get("id", transaction_id)), splits, decision)

    return {
        "transaction_id": str(transaction_id),
        "decision": decision.decision.value,
        "account_id": account_id,
        "account_name": decision.account.name,
        "source": decision.account.source.value,
    }


@app.task(name="services.worker.tasks.assign_expense_account.assign_expense_account_task")
def assign_expense_account_task(transaction_id: str) -> Dict[str, Any]:
    """
    Celery entry point for one expense account job.

    Args:
        transaction_id: Firefly transaction group ID

    Returns:
        Summary of the applied decision
    """
    logger.info("expense_account_job_started", transaction_id=transaction_id)

    matcher, service = get_components()

    try:
        result = run_in_worker_loop(
            assign_expense_account(transaction_id, service.ledger, matcher, service)
        )
    except Exception as e:
        logger.error("expense_account_job_failed",
                    transaction_id=transaction_id,
                    error=str(e),
                    exc_info=True)
        raise

    logger.info("expense_account_job_complete", **result)
    return result
