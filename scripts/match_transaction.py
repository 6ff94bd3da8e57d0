#!/usr/bin/env python3
"""
Resolve the expense account for a transaction text (dry run, no ledger writes).

Searches Firefly III and calls the configured AI provider, then prints the
decision. Nothing is created or assigned.

Usage:
    python scripts/match_transaction.py "<description>" ["<destination name>"]

Example:
    python scripts/match_transaction.py "COMPRA EN STARBUCKS MADRID 1234567890" "Starbucks"
"""
import sys
import os
import asyncio

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from packages.common.config import get_settings
from packages.common.logging_setup import configure_logging
from packages.domain.expense_accounts import ExpenseAccountMatcher, Transaction, normalize_text
from packages.ledger.firefly_client import FireflyClient
from packages.providers import create_provider_from_config


async def main():
    if len(sys.argv) < 2:
        print('Usage: python scripts/match_transaction.py "<description>" ["<destination name>"]')
        sys.exit(1)

    settings = get_settings()
    configure_logging(settings.log_level)

    transaction = Transaction(
        description=sys.argv[1],
        destination_name=sys.argv[2] if len(sys.argv) > 2 else None,
    )

    print('=' * 80)
    print(f'Description: {transaction.description}')
    print(f'Destination: {transaction.destination_name or "-"}')
    print(f'Normalized:  {normalize_text(transaction.description).normalized_text or "-"}')
    print('=' * 80)

    matcher = ExpenseAccountMatcher(
        provider=create_provider_from_config(settings),
        search=FireflyClient.from_settings(settings),
        autocomplete_limit=settings.autocomplete_limit,
        lenient_fallback=settings.matcher_lenient_fallback,
        first_candidate_fallback=settings.matcher_first_candidate_fallback,
    )

    decision = await matcher.match_transaction(transaction)

    print('\nDecision:')
    print(f'  Decision:    {decision.decision.value}')
    print(f'  Account:     {decision.account.name}')
    print(f'  Account ID:  {decision.account.id or "(to be created)"}')
    print(f'  Description: {decision.account.description or "-"}')
    print(f'  Source:      {decision.account.source.value}')


if __name__ == "__main__":
    asyncio.run(main())
