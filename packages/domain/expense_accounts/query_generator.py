"""
Query Generator - Ranked autocomplete queries for a transaction

Most specific first, so the candidate collector can stop at the first
query that returns anything:
1. Raw destination name (exact brand capitalization)
2. Normalized destination, then normalized description
3. First three / first two description tokens
4. Single distinctive tokens (longer than 3 characters)
"""
from typing import List

from packages.domain.expense_accounts.schemas import NormalizedText, Transaction
from packages.domain.expense_accounts.text_normalizer import is_placeholder

MIN_SINGLE_TOKEN_LENGTH = 4


def generate_queries(
    transaction: Transaction,
    description_info: NormalizedText,
    destination_info: NormalizedText,
) -> List[str]:
    """
    Build the ordered, de-duplicated query list for a transaction.

    Args:
        transaction: Raw transaction text
        description_info: Normalized description
        destination_info: Normalized destination name

    Returns:
        Non-empty query strings in priority order
    """
    queries: List[str] = []

    destination = transaction.destination_name
    if destination and not is_placeholder(destination):
        queries.append(destination.strip())

    queries.append(destination_info.normalized_text)
    queries.append(description_info.normalized_text)

    description_tokens = description_info.tokens
    if len(description_tokens) >= 3:
        queries.append(" ".join(description_tokens[:3]))
    if len(description_tokens) >= 2:
        queries.append(" ".join(description_tokens[:2]))

    queries.extend(token for token in description_tokens if len(token) >= MIN_SINGLE_TOKEN_LENGTH)
    queries.extend(token for token in destination_info.tokens if len(token) >= MIN_SINGLE_TOKEN_LENGTH)

    cleaned = (query.strip() for query in queries)
    return list(dict.fromkeys(query for query in cleaned if query))
