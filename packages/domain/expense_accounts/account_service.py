"""
Expense Account Service - Applies a matcher decision to the ledger

- "existing": use the decided account id
- "create": create the account; if Firefly says the name is taken (an earlier
  job created it, or the cache still holds the original "create" decision),
  look the account up by name and reuse it
"""
from typing import Any, Dict, List, Optional, Protocol

import structlog

from packages.domain.expense_accounts.schemas import AccountCandidate, AccountDecision
from packages.ledger.errors import AccountConflictError

logger = structlog.get_logger()

EXPENSE_ACCOUNT_TYPE = "expense"


class ExpenseAccountLedger(Protocol):
    """Ledger capabilities needed to apply a decision (FireflyClient implements this)."""

    async def create_account(self, name: str, account_type: str = "expense", note: str = "") -> str:
        ...

    async def find_expense_account_by_name(self, name: str, limit: int = 15) -> Optional[AccountCandidate]:
        ...

    async def set_account(
        self,
        transaction_id: str,
        splits: List[Dict[str, Any]],
        account_id: str,
        account_type: str = "destination",
    ) -> None:
        ...


class ExpenseAccountService:
    """Turn decisions into ledger account ids and assignments."""

    def __init__(self, ledger: ExpenseAccountLedger):
        self.ledger = ledger

    async def resolve_account_id(self, decision: AccountDecision) -> str:
        """
        Get the ledger id for a decision, creating the account when needed.

        Raises:
            AccountConflictError: Name taken but the account cannot be found
            FireflyError: Any other ledger failure
        """
        if decision.is_existing:
            return decision.account.id

        name = decision.account.name
        try:
            return await self.ledger.create_account(
                name,
                EXPENSE_ACCOUNT_TYPE,
                note=decision.account.description,
            )
        except AccountConflictError:
            logger.info("expense_account_exists_recovering", name=name)
            existing = await self.ledger.find_expense_account_by_name(name)
            if existing is None:
                logger.error("expense_account_conflict_unresolved", name=name)
                raise
            logger.info("expense_account_recovered", name=name, account_id=existing.id)
            return existing.id

    async def apply_decision(
        self,
        transaction_id: str,
        splits: List[Dict[str, Any]],
        decision: AccountDecision,
    ) -> str:
        """
        Resolve the account and set it as the transaction's destination.

        Returns:
            The account id that was assigned
        """
        account_id = await self.resolve_account_id(decision)
        await self.ledger.set_account(transaction_id, splits, account_id, "destination")

        logger.info("expense_account_applied",
                   transaction_id=transaction_id,
                   account_id=account_id,
                   account_name=decision.account.name,
                   source=decision.account.source.value)

        return account_id
