"""
Firefly III Client - Async access to the ledger API

Only the capabilities the expense account flow consumes:
- Autocomplete search over expense accounts
- Account creation (duplicate names surface as AccountConflictError)
- Transaction fetch and destination/source account assignment

Each call opens a short-lived httpx.AsyncClient, so the client object
is safe to share across asyncio.run() invocations in the worker.
"""
from typing import Optional, List, Dict, Any

import httpx
import structlog

from packages.common.config import Settings, get_settings
from packages.domain.expense_accounts.schemas import AccountCandidate
from packages.ledger.errors import LedgerError, FireflyError, AccountConflictError

logger = structlog.get_logger()


class FireflyClient:
    """
    Firefly III REST client.

    Usage:
        client = FireflyClient.from_settings()
        candidates = await client.search_expense_accounts("starbucks", limit=15)
    """

    def __init__(
        self,
        base_url: str,
        personal_token: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Firefly client.

        Args:
            base_url: Firefly III base URL (trailing slash is stripped)
            personal_token: Personal access token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        if not base_url:
            raise ValueError("Firefly base URL is required (FIREFLY_URL)")
        if not personal_token:
            raise ValueError("Firefly personal token is required (FIREFLY_PERSONAL_TOKEN)")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = personal_token
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FireflyClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.firefly_url or "",
            personal_token=settings.firefly_personal_token or "",
            timeout=settings.firefly_timeout_seconds,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("firefly_request_failed",
                        method=method,
                        path=path,
                        error=str(e))
            raise LedgerError(f"Error while communicating with Firefly III: {e}") from e

    async def search_expense_accounts(self, query: str, limit: int = 15) -> List[AccountCandidate]:
        """
        Autocomplete search scoped to expense accounts.

        Args:
            query: Search text
            limit: Maximum number of suggestions

        Returns:
            Candidates with trimmed names and string ids; entries without
            a name or id are dropped

        Raises:
            FireflyError: Non-success status or a body that is not a JSON list
        """
        response = await self._request(
            "GET",
            "/api/v1/autocomplete/accounts",
            params={"types": "expense", "query": query.strip(), "limit": str(limit)},
        )

        if not response.is_success:
            raise FireflyError(response.status_code, response.text)

        payload = self._json_body(response)
        if not isinstance(payload, list):
            raise FireflyError(response.status_code, response.text)

        candidates = []
        for account in payload:
            if not isinstance(account, dict):
                continue
            name = (account.get("name") or "").strip()
            account_id = account.get("id")
            if not name or account_id is None:
                continue
            candidates.append(AccountCandidate(id=str(account_id), name=name))

        logger.debug("firefly_autocomplete_complete",
                    query=query,
                    results=len(candidates))

        return candidates

    async def find_expense_account_by_name(self, name: str, limit: int = 15) -> Optional[AccountCandidate]:
        """Exact (case-insensitive) name lookup through autocomplete."""
        wanted = name.strip().lower()
        for candidate in await self.search_expense_accounts(name, limit=limit):
            if candidate.name.lower() == wanted:
                return candidate
        return None

    async def create_account(self, name: str, account_type: str = "expense", note: str = "") -> str:
        """
        Create a new account.

        Args:
            name: Account name
            account_type: Firefly account type (e.g., 'expense')
            note: Short description stored as the account note

        Returns:
            ID of the created account

        Raises:
            AccountConflictError: If an account with that name already exists
            FireflyError: On any other non-success response
        """
        body = {
            "name": name,
            "type": account_type,
            "notes": note or "",
            "iban": None,
            "bic": None,
            "account_number": None,
            "virtual_balance": 0,
            "active": True,
            "order": 0,
            "include_net_worth": True,
        }

        logger.info("firefly_creating_account", name=name, account_type=account_type)
        response = await self._request("POST", "/api/v1/accounts", json=body)

        if response.status_code == 422 and self._is_name_conflict(response):
            logger.warning("firefly_account_name_conflict", name=name)
            raise AccountConflictError(name, response.status_code, response.text)

        if not response.is_success:
            raise FireflyError(response.status_code, response.text)

        try:
            account_id = str(self._json_body(response)["data"]["id"])
        except (KeyError, TypeError) as e:
            raise FireflyError(response.status_code, response.text) from e

        logger.info("firefly_account_created", name=name, account_id=account_id)
        return account_id

    @staticmethod
    def _json_body(response: httpx.Response) -> Any:
        """Decoded body; an HTML error page behind a 200 counts as a failed call."""
        try:
            return response.json()
        except ValueError as e:
            logger.error("firefly_invalid_json",
                        status_code=response.status_code,
                        body=response.text[:200])
            raise FireflyError(response.status_code, response.text) from e

    @staticmethod
    def _is_name_conflict(response: httpx.Response) -> bool:
        """Firefly reports validation failures per field under 'errors'."""
        try:
            payload = response.json()
        except ValueError:
            return False
        errors = payload.get("errors") if isinstance(payload, dict) else None
        return isinstance(errors, dict) and "name" in errors

    async def get_transaction(self, transaction_id: str) -> Dict[str, Any]:
        """Fetch a transaction group (journal with its splits)."""
        response = await self._request("GET", f"/api/v1/transactions/{transaction_id}")

        if not response.is_success:
            raise FireflyError(response.status_code, response.text)

        payload = self._json_body(response)
        if not isinstance(payload, dict):
            raise FireflyError(response.status_code, response.text)
        return payload

    async def set_account(
        self,
        transaction_id: str,
        splits: List[Dict[str, Any]],
        account_id: str,
        account_type: str = "destination",
    ) -> None:
        """
        Set the source or destination account on every split of a transaction.

        Args:
            transaction_id: Transaction group ID
            splits: Splits with transaction_journal_id
            account_id: Account to assign
            account_type: 'source' or 'destination'
        """
        if account_type not in ("source", "destination"):
            raise ValueError(f"account_type must be 'source' or 'destination', got {account_type}")

        field = "source_id" if account_type == "source" else "destination_id"
        body = {
            "apply_rules": True,
            "fire_webhooks": True,
            "transactions": [
                {
                    "transaction_journal_id": split["transaction_journal_id"],
                    field: account_id,
                }
                for split in splits
            ],
        }

        response = await self._request("PUT", f"/api/v1/transactions/{transaction_id}", json=body)

        if not response.is_success:
            raise FireflyError(response.status_code, response.text)

        logger.info("firefly_transaction_account_updated",
                   transaction_id=transaction_id,
                   account_id=account_id,
                   account_type=account_type)
