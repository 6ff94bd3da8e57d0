"""
Expense Accounts Module - Counterparty resolution for ledger transactions

Layered strategy, cheapest first:
1. Normalization: strip card numbers, dates, wallet/bank boilerplate
2. Autocomplete: query Firefly with progressively broader search strings
3. Token overlap: accept a candidate without AI when enough tokens agree
4. AI fallback: pick among candidates or propose a new account (validated)

Decision cache:
- First transaction from a merchant → autocomplete (+ maybe AI)
- Same normalized text again → cache hit, no external calls

Example flow:
- "COMPRA EN STARBUCKS MADRID 1234567890" at "Starbucks"
  → query "Starbucks" → [Starbucks Coffee] → existing account (autocomplete)
- "Unknown payment" with no destination
  → no candidates → AI → create "Generic Merchant" (ai-new)
"""

from packages.domain.expense_accounts.account_service import ExpenseAccountService
from packages.domain.expense_accounts.decision_cache import DecisionCache
from packages.domain.expense_accounts.errors import AiResponseError, InvalidTransactionError
from packages.domain.expense_accounts.matcher import ExpenseAccountMatcher
from packages.domain.expense_accounts.schemas import (
    AccountCandidate,
    AccountDecision,
    AccountSource,
    DecisionType,
    NormalizedText,
    ResolvedAccount,
    Transaction,
)
from packages.domain.expense_accounts.text_normalizer import is_placeholder, normalize_text

__all__ = [
    'AccountCandidate',
    'AccountDecision',
    'AccountSource',
    'AiResponseError',
    'DecisionCache',
    'DecisionType',
    'ExpenseAccountMatcher',
    'ExpenseAccountService',
    'InvalidTransactionError',
    'NormalizedText',
    'ResolvedAccount',
    'Transaction',
    'is_placeholder',
    'normalize_text',
]
