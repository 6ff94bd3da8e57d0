"""
Pytest Configuration and Shared Fixtures

Fakes for the two external capabilities the matcher depends on:
- Autocomplete search over expense accounts (scripted per query)
- AI completion provider (scripted responses, records prompts)
"""
from typing import Any, Dict, List, Optional

import pytest

from packages.domain.expense_accounts.schemas import AccountCandidate
from packages.ledger.errors import AccountConflictError


class FakeExpenseSearch:
    """Autocomplete search returning canned results per query."""

    def __init__(self, results: Optional[Dict[str, Any]] = None):
        self.results = results or {}
        self.calls: List[tuple] = []

    @property
    def queries(self) -> List[str]:
        return [query for query, _ in self.calls]

    async def search_expense_accounts(self, query: str, limit: int = 15) -> List[AccountCandidate]:
        self.calls.append((query, limit))
        result = self.results.get(query, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class ScriptedProvider:
    """Completion provider answering from a list of canned responses."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.options: List[Any] = []

    async def get_completion(self, prompt, options=None) -> str:
        self.prompts.append(prompt)
        self.options.append(options)
        if not self.responses:
            raise AssertionError("Unexpected AI call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def capabilities(self) -> Dict[str, Any]:
        return {"id": "scripted", "label": "Scripted", "models": ["test"]}


class FakeLedger(FakeExpenseSearch):
    """In-memory ledger: search, create (with name conflicts), assign, fetch."""

    def __init__(self, results=None, existing_names=None, transactions=None):
        super().__init__(results)
        self.existing = dict(existing_names or {})
        self.transactions = dict(transactions or {})
        self.created: List[tuple] = []
        self.assigned: List[tuple] = []
        self._next_id = 100

    async def create_account(self, name: str, account_type: str = "expense", note: str = "") -> str:
        if name.lower() in {n.lower() for n in self.existing}:
            raise AccountConflictError(name)
        self._next_id += 1
        account_id = str(self._next_id)
        self.created.append((name, account_type, note))
        self.existing[name] = account_id
        return account_id

    async def find_expense_account_by_name(self, name: str, limit: int = 15) -> Optional[AccountCandidate]:
        for existing_name, account_id in self.existing.items():
            if existing_name.lower() == name.lower():
                return AccountCandidate(id=account_id, name=existing_name)
        return None

    async def set_account(self, transaction_id, splits, account_id, account_type="destination") -> None:
        self.assigned.append((transaction_id, splits, account_id, account_type))

    async def get_transaction(self, transaction_id: str) -> Dict[str, Any]:
        return self.transactions[transaction_id]


def candidate(account_id: str, name: str, description: str = "") -> AccountCandidate:
    return AccountCandidate(id=account_id, name=name, description=description)


@pytest.fixture
def make_candidate():
    """Factory for AccountCandidate instances."""
    return candidate


@pytest.fixture
def fake_search():
    """Factory: fake_search({"query": [candidates]})"""
    return FakeExpenseSearch


@pytest.fixture
def scripted_provider():
    """Factory: scripted_provider(['{"decision": ...}'])"""
    return ScriptedProvider


@pytest.fixture
def fake_ledger():
    """Factory: fake_ledger(results=..., existing_names=..., transactions=...)"""
    return FakeLedger
