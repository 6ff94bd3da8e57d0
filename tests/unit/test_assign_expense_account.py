"""
Tests for the expense account assignment job.
"""

import asyncio
import json

import httpx
import pytest
from openai import AsyncOpenAI

from packages.domain.expense_accounts import AiResponseError, ExpenseAccountMatcher, ExpenseAccountService
from packages.providers.provider_openai import OpenAiProvider
from services.worker import celery_app
from services.worker.tasks import assign_expense_account as task_module


def firefly_transaction(transaction_id="77", description="COMPRA EN STARBUCKS MADRID 1234567890",
                        destination="Starbucks"):
    return {
        "data": {
            "id": transaction_id,
            "attributes": {
                "transactions": [
                    {
                        "transaction_journal_id": "55",
                        "description": description,
                        "destination_name": destination,
                    },
                ],
            },
        },
    }


def build(fake_ledger, scripted_provider, make_candidate, responses=None, transactions=None):
    ledger = fake_ledger(
        results={"Starbucks": [make_candidate("9", "Starbucks Coffee")]},
        transactions=transactions or {"77": firefly_transaction()},
    )
    provider = scripted_provider(responses)
    matcher = ExpenseAccountMatcher(provider, ledger)
    service = ExpenseAccountService(ledger)
    return ledger, provider, matcher, service


class TestAssignExpenseAccount:
    """Test the job coroutine end to end against an in-memory ledger."""

    def test_existing_account_assigned(self, fake_ledger, scripted_provider, make_candidate):
        """Autocomplete match is written as the destination account."""
        ledger, provider, matcher, service = build(fake_ledger, scripted_provider, make_candidate)

        result = asyncio.run(task_module.assign_expense_account("77", ledger, matcher, service))

        assert result == {
            "transaction_id": "77",
            "decision": "existing",
            "account_id": "9",
            "account_name": "Starbucks Coffee",
            "source": "autocomplete",
        }
        assert ledger.assigned == [("77", [{
            "transaction_journal_id": "55",
            "description": "COMPRA EN STARBUCKS MADRID 1234567890",
            "destination_name": "Starbucks",
        }], "9", "destination")]
        assert ledger.created == []
        assert provider.prompts == []

    def test_new_account_created_and_assigned(self, fake_ledger, scripted_provider, make_candidate):
        """AI proposal is created in the ledger before assignment."""
        answer = json.dumps({
            "decision": "create",
            "account": {"name": "Generic Merchant", "description": "Misc payments"},
        })
        ledger, _, matcher, service = build(
            fake_ledger, scripted_provider, make_candidate,
            responses=[answer],
            transactions={"78": firefly_transaction("78", "Unknown payment", None)},
        )

        result = asyncio.run(task_module.assign_expense_account("78", ledger, matcher, service))

        assert result["decision"] == "create"
        assert result["source"] == "ai-new"
        assert ledger.created == [("Generic Merchant", "expense", "Misc payments")]
        assert ledger.assigned[0][0] == "78"
        assert ledger.assigned[0][2] == result["account_id"]

    def test_transaction_without_splits(self, fake_ledger, scripted_provider, make_candidate):
        """Nothing to match is an error, and nothing is written."""
        empty = {"data": {"id": "79", "attributes": {"transactions": []}}}
        ledger, _, matcher, service = build(
            fake_ledger, scripted_provider, make_candidate, transactions={"79": empty}
        )

        with pytest.raises(ValueError, match="no splits"):
            asyncio.run(task_module.assign_expense_account("79", ledger, matcher, service))

        assert ledger.assigned == []

    def test_ai_failure_writes_nothing(self, fake_ledger, scripted_provider, make_candidate):
        """A failed decision leaves the ledger untouched."""
        ledger, _, matcher, service = build(
            fake_ledger, scripted_provider, make_candidate,
            responses=["not json"],
            transactions={"80": firefly_transaction("80", "Unknown payment", None)},
        )

        with pytest.raises(AiResponseError):
            asyncio.run(task_module.assign_expense_account("80", ledger, matcher, service))

        assert ledger.created == []
        assert ledger.assigned == []


class TestCeleryTask:
    """Test the synchronous Celery entry point."""

    @pytest.fixture(autouse=True)
    def worker_loop(self):
        yield
        celery_app.close_worker_loop()

    def test_task_runs_job(self, monkeypatch, fake_ledger, scripted_provider, make_candidate):
        """Task wires the shared components and returns the summary."""
        ledger, _, matcher, service = build(fake_ledger, scripted_provider, make_candidate)
        monkeypatch.setattr(task_module, "get_components", lambda: (matcher, service))

        result = task_module.assign_expense_account_task("77")

        assert result["account_id"] == "9"
        assert len(ledger.assigned) == 1

    def test_task_reraises(self, monkeypatch, fake_ledger, scripted_provider, make_candidate):
        """Job failures propagate so Celery marks the task failed."""
        ledger, _, matcher, service = build(fake_ledger, scripted_provider, make_candidate)
        monkeypatch.setattr(task_module, "get_components", lambda: (matcher, service))

        with pytest.raises(KeyError):
            task_module.assign_expense_account_task("missing")

    def test_consecutive_jobs_share_sdk_client(self, monkeypatch, fake_ledger):
        """Back-to-back jobs reuse the same OpenAI client on one event loop."""
        loops = []

        def openai_handler(request):
            loops.append(asyncio.get_running_loop())
            name = f"Merchant {len(loops)}"
            return httpx.Response(200, json={
                "id": f"chatcmpl-{len(loops)}",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [{
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {
                        "role": "assistant",
                        "content": json.dumps({
                            "decision": "create",
                            "account": {"name": name, "description": ""},
                        }),
                    },
                }],
                "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            })

        client = AsyncOpenAI(
            api_key="sk-test",
            max_retries=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(openai_handler)),
        )
        ledger = fake_ledger(transactions={
            "81": firefly_transaction("81", "Unknown payment", None),
            "82": firefly_transaction("82", "Mystery vendor", None),
        })
        matcher = ExpenseAccountMatcher(OpenAiProvider("sk-test", client=client), ledger)
        service = ExpenseAccountService(ledger)
        monkeypatch.setattr(task_module, "get_components", lambda: (matcher, service))

        first = task_module.assign_expense_account_task("81")
        second = task_module.assign_expense_account_task("82")

        assert first["account_name"] == "Merchant 1"
        assert second["account_name"] == "Merchant 2"
        assert len(loops) == 2
        assert loops[0] is loops[1]
        assert [name for name, _, _ in ledger.created] == ["Merchant 1", "Merchant 2"]


class TestWorkerLoop:
    """Test the per-process event loop helpers."""

    def test_loop_reused_until_closed(self):
        """Coroutines share one loop; closing starts a fresh one next time."""
        async def current_loop():
            return asyncio.get_running_loop()

        try:
            first = celery_app.run_in_worker_loop(current_loop())
            second = celery_app.run_in_worker_loop(current_loop())
            assert first is second

            celery_app.close_worker_loop()
            assert first.is_closed()

            third = celery_app.run_in_worker_loop(current_loop())
            assert third is not first
        finally:
            celery_app.close_worker_loop()

    def test_close_without_loop(self):
        """Closing before any job ran is a no-op."""
        celery_app.close_worker_loop()
        celery_app.close_worker_loop()
