"""
Text Normalizer - Canonical token form for bank transaction text

Bank descriptions carry a lot of noise around the merchant name:
card numbers, dates, wallet names ("Google Pay"), Spanish banking
boilerplate ("COMPRA EN ... CON LA TARJETA"). Normalization strips it so that
token overlap and cache keys only see the words that identify the merchant.

Example:
- Input: "COMPRA EN STARBUCKS MADRID 1234567890"
- Output: tokens ["starbucks", "madrid"], text "starbucks madrid"

normalize_text is pure and deterministic; its output is part of the decision
cache key.
"""
import re
import unicodedata
from typing import Optional

from packages.domain.expense_accounts.schemas import NormalizedText

PLACEHOLDER_VALUES = frozenset({
    "",
    "no name",
    "sin nombre",
    "unknown",
    "desconocido",
})

# Removed as whole words before punctuation stripping
GENERIC_PHRASES = (
    "google pay",
    "apple pay",
    "compra en",
    "compras en",
    "con la tarjeta",
    "tarjeta",
)

STOP_WORDS = frozenset({
    "con", "en", "por", "para", "una", "un", "y",
    "el", "la", "los", "las", "de", "del", "al",
    "compra", "compras", "tarjeta", "banco", "pago",
    "google", "pay", "apple",
})

_ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_LONG_DIGITS_RE = re.compile(r"\b\d{4,}\b")
_PHRASE_RES = tuple(
    re.compile(r"\b" + r"\s+".join(re.escape(word) for word in phrase.split()) + r"\b")
    for phrase in GENERIC_PHRASES
)
_NON_LETTER_RE = re.compile(r"[^a-z\s]")
_BRACKETS_QUOTES_RE = re.compile(r"[()\[\]{}\"']")
_WHITESPACE_RE = re.compile(r"\s+")


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_placeholder(text: Optional[str]) -> bool:
    """
    Check whether a value carries no identifying information.

    Examples:
        is_placeholder("") -> True
        is_placeholder("  Sin Nombre  ") -> True
        is_placeholder("(Unknown)") -> True
        is_placeholder("N/A-but-real") -> False
    """
    if text is None:
        return True

    folded = _strip_diacritics(str(text)).lower().strip()
    stripped = _WHITESPACE_RE.sub(" ", _BRACKETS_QUOTES_RE.sub("", folded)).strip()

    return stripped in PLACEHOLDER_VALUES


def normalize_text(text: Optional[str]) -> NormalizedText:
    """
    Reduce free text to its ordered, de-duplicated canonical tokens.

    Args:
        text: Raw description or merchant name

    Returns:
        NormalizedText (empty when the input is empty or a placeholder)
    """
    if not text or not isinstance(text, str) or is_placeholder(text):
        return NormalizedText()

    simplified = _strip_diacritics(text).lower()
    simplified = _ISO_DATE_RE.sub(" ", simplified)
    simplified = _LONG_DIGITS_RE.sub(" ", simplified)

    for pattern in _PHRASE_RES:
        simplified = pattern.sub(" ", simplified)

    simplified = _NON_LETTER_RE.sub(" ", simplified)

    tokens = [
        token for token in simplified.split()
        if len(token) > 1 and not token.isdigit() and token not in STOP_WORDS
    ]
    unique_tokens = list(dict.fromkeys(tokens))
    normalized = " ".join(unique_tokens)

    # "Unknown!" survives the first check but collapses to "unknown"
    if is_placeholder(normalized):
        return NormalizedText()

    return NormalizedText(normalized_text=normalized, tokens=unique_tokens)
