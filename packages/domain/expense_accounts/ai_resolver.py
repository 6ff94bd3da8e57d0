"""
AI Fallback Resolver - Pick or create an expense account with the AI backend

Used only when token overlap is inconclusive.

Two prompts:
- No candidates: ask for a new account named after the merchant
- Candidates: ask the model to pick one of them, or create when none fits

The model's answer is never trusted blindly:
- JSON is extracted from markdown fences / surrounding prose and validated
- An "existing" answer must name one of the real candidates, otherwise it
  is downgraded to "create"
- Anything malformed raises AiResponseError (no silent defaults)
"""
import json
from typing import Any, Dict, List, Sequence

import structlog

from packages.domain.expense_accounts.errors import AiResponseError
from packages.domain.expense_accounts.schemas import (
    AccountCandidate,
    AccountDecision,
    AccountSource,
    DecisionType,
    ResolvedAccount,
    Transaction,
)
from packages.domain.expense_accounts.text_normalizer import is_placeholder
from packages.providers.base import CompletionOptions, CompletionProvider

logger = structlog.get_logger()

AI_COMPLETION_OPTIONS = CompletionOptions(temperature=0.2, max_tokens=2048)

VALID_DECISIONS = {DecisionType.EXISTING.value, DecisionType.CREATE.value}


def extract_json_object(response_text: str) -> Dict[str, Any]:
    """
    Extract the JSON object from a completion.

    Handles ```json fences and prose around the object by slicing from the
    first '{' to the last '}'.

    Raises:
        AiResponseError: If no JSON object can be parsed
    """
    if not response_text or not isinstance(response_text, str):
        raise AiResponseError("Empty or invalid response from AI", str(response_text or ""))

    cleaned = response_text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.rstrip().endswith("```"):
        cleaned = cleaned.rstrip()[:-3]

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1 or last_brace <= first_brace:
        raise AiResponseError("No JSON found in AI response", response_text)

    try:
        parsed = json.loads(cleaned[first_brace:last_brace + 1])
    except json.JSONDecodeError as e:
        raise AiResponseError(f"Failed to parse AI response: {e}", response_text) from e

    if not isinstance(parsed, dict):
        raise AiResponseError("AI response is not a JSON object", response_text)

    return parsed


def validate_decision_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the decision/account structure.

    Valid iff decision is 'existing' or 'create', account is an object with
    a non-empty string name, and description (when present) is a string.

    Raises:
        AiResponseError: On any structural problem
    """
    decision = data.get("decision")
    if decision not in VALID_DECISIONS:
        raise AiResponseError(f"Invalid decision in AI response: {decision!r}", json.dumps(data))

    account = data.get("account")
    if not isinstance(account, dict):
        raise AiResponseError("AI response has no account object", json.dumps(data))

    name = account.get("name")
    if not isinstance(name, str) or not name.strip():
        raise AiResponseError("AI response account has no name", json.dumps(data))

    description = account.get("description")
    if description is not None and not isinstance(description, str):
        raise AiResponseError("AI response account description is not a string", json.dumps(data))

    return data


class AiAccountResolver:
    """
    Resolve a transaction to an account decision with the AI backend.

    Usage:
        resolver = AiAccountResolver(provider)
        decision = await resolver.resolve(transaction, candidates)
    """

    def __init__(self, provider: CompletionProvider, options: CompletionOptions = AI_COMPLETION_OPTIONS):
        if provider is None:
            raise ValueError("AiAccountResolver requires an AI provider instance")
        self.provider = provider
        self.options = options

    async def resolve(
        self,
        transaction: Transaction,
        candidates: Sequence[AccountCandidate],
    ) -> AccountDecision:
        """
        Ask the AI to pick among candidates or create a new account.

        Args:
            transaction: Raw transaction text
            candidates: Autocomplete candidates (may be empty)

        Returns:
            Validated AccountDecision

        Raises:
            AiResponseError: Malformed or invalid AI response
            ProviderError: AI backend unreachable
        """
        usable = [c for c in candidates if c.name and not is_placeholder(c.name)]

        if not usable:
            return await self._create_new(transaction)

        return await self._choose_or_create(transaction, usable)

    async def _create_new(self, transaction: Transaction) -> AccountDecision:
        prompt = self._build_creation_prompt(transaction)
        data = await self._complete(prompt)

        if data["decision"] != DecisionType.CREATE.value:
            raise AiResponseError(
                f"Expected a 'create' decision, got {data['decision']!r}",
                json.dumps(data),
            )

        return self._new_account_decision(data["account"])

    async def _choose_or_create(
        self,
        transaction: Transaction,
        candidates: List[AccountCandidate],
    ) -> AccountDecision:
        prompt = self._build_selection_prompt(transaction, [c.name for c in candidates])
        data = await self._complete(prompt)
        account = data["account"]

        if data["decision"] == DecisionType.EXISTING.value:
            wanted = account["name"].strip().lower()
            matching = next((c for c in candidates if c.name.lower() == wanted), None)

            if matching is not None:
                return AccountDecision(
                    decision=DecisionType.EXISTING,
                    account=ResolvedAccount(
                        id=matching.id,
                        name=matching.name,
                        description=account.get("description") or matching.description or "",
                        source=AccountSource.AI,
                    ),
                )

            logger.warning("ai_existing_match_not_in_candidates",
                          ai_name=account["name"],
                          candidates=[c.name for c in candidates])

        return self._new_account_decision(account)

    async def _complete(self, prompt: str) -> Dict[str, Any]:
        logger.debug("ai_account_prompt", prompt=prompt)
        response_text = await self.provider.get_completion(prompt, self.options)
        logger.debug("ai_account_response", response=response_text)

        try:
            return validate_decision_payload(extract_json_object(response_text))
        except AiResponseError as e:
            logger.error("ai_account_response_invalid",
                        error=str(e),
                        response=response_text)
            raise

    @staticmethod
    def _new_account_decision(account: Dict[str, Any]) -> AccountDecision:
        return AccountDecision(
            decision=DecisionType.CREATE,
            account=ResolvedAccount(
                name=account["name"].strip(),
                description=account.get("description") or "",
                source=AccountSource.AI_NEW,
            ),
        )

    def _build_creation_prompt(self, transaction: Transaction) -> str:
        """Prompt for a brand-new expense account named after the merchant."""
        destination = transaction.destination_name
        if not destination or is_placeholder(destination):
            destination = "Not specified"

        return f"""You are creating specific expense accounts for financial transactions. Your goal is to create accounts using the actual merchant/brand name rather than generic categories.

TRANSACTION DATA:
- Description: "{transaction.description}"
- Merchant/Location: {destination}

RULES FOR ACCOUNT NAMING:
1. ALWAYS prefer the actual merchant/brand name over generic categories
2. Use the exact business name if available and recognizable
3. Only use generic names when the merchant cannot be recovered (like "ATM Withdrawal")
4. Keep names concise but descriptive (2-4 words ideally)

EXAMPLES:
GOOD: "Starbucks Coffee", "Shell Gas Station", "Amazon Purchase", "Walmart Groceries"
BAD: "Coffee Shop", "Gas Station", "Online Shopping", "Grocery Store"

RESPONSE FORMAT (return ONLY this JSON, no other text):
{{
  "decision": "create",
  "account": {{
    "name": "Merchant name",
    "description": "Brief description of what this account covers"
  }}
}}
"""

    def _build_selection_prompt(self, transaction: Transaction, candidate_names: List[str]) -> str:
        """Prompt to choose one of the existing accounts, or create one."""
        destination = ""
        if transaction.destination_name and not is_placeholder(transaction.destination_name):
            destination = f" at {transaction.destination_name}"
        candidates_text = "\n".join(f"- {name}" for name in candidate_names)

        return f"""You match financial transactions to existing expense accounts.

TRANSACTION: "{transaction.description}"{destination}

EXISTING ACCOUNTS:
{candidates_text}

INSTRUCTIONS:
1. If one of the existing accounts plausibly is the merchant of this transaction, choose it
   and copy its name EXACTLY as listed ("decision": "existing")
2. Only if none of them fits, propose a new account named after the merchant
   (2-4 words, prefer the brand name) ("decision": "create")

RESPONSE FORMAT (return ONLY this JSON, no other text):
{{
  "decision": "existing" or "create",
  "account": {{
    "name": "account name",
    "description": "brief description"
  }}
}}
"""
