"""
Deterministic Matcher - Token-overlap scoring without AI

Candidates arrive pre-ranked by the autocomplete backend, so the first
candidate that reaches the overlap threshold wins.

Threshold adapts to how many tokens the transaction has:
- More than 10 tokens: a quarter of them must overlap
- 10 or fewer: a majority must overlap
"""
import math
from typing import Iterable, Optional, Sequence

from packages.domain.expense_accounts.schemas import AccountCandidate
from packages.domain.expense_accounts.text_normalizer import is_placeholder, normalize_text

DENSE_TOKEN_COUNT = 10


def minimum_matches(token_count: int) -> int:
    """Overlap needed for a confident match."""
    if token_count > DENSE_TOKEN_COUNT:
        return max(1, token_count // 4)
    return max(1, math.ceil(token_count / 2))


def match_candidates(
    candidates: Sequence[AccountCandidate],
    description_tokens: Iterable[str],
    destination_tokens: Iterable[str],
    lenient: bool = False,
) -> Optional[AccountCandidate]:
    """
    Pick a candidate by token overlap.

    Args:
        candidates: Autocomplete results, best first
        description_tokens: Normalized description tokens
        destination_tokens: Normalized destination tokens
        lenient: Fall back to the best partial overlap when nobody
            reaches the threshold

    Returns:
        Matched candidate, or None when the AI should decide
    """
    if not candidates:
        return None

    if len(candidates) == 1:
        only = candidates[0]
        return None if is_placeholder(only.name) else only

    target_tokens = set(description_tokens) | set(destination_tokens)
    required = minimum_matches(len(target_tokens))

    best: Optional[AccountCandidate] = None
    best_score = 0

    for candidate in candidates:
        if not candidate.name:
            continue

        candidate_tokens = set(normalize_text(candidate.name).tokens)
        score = len(target_tokens & candidate_tokens)

        if score >= required:
            return candidate

        if score > best_score:
            best, best_score = candidate, score

    if lenient and best_score > 0:
        return best

    return None
