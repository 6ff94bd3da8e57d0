"""
Celery worker for expense account jobs

One job per Firefly transaction, processed strictly one at a time:
- worker_concurrency=1 and prefetch 1, so jobs never overlap
- hard time limit per job (JOB_TIME_LIMIT_SECONDS)
- the matcher's decision cache lives for the worker process, so
  recycling processes would throw it away
- every job runs on one event loop per process (run_in_worker_loop):
  the AI SDK clients keep connection pools bound to the loop they
  first ran on
"""
import asyncio
from typing import Any, Coroutine, Optional, TypeVar

from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown
import structlog

from packages.common.config import get_settings
from packages.common.logging_setup import configure_logging

logger = structlog.get_logger()
settings = get_settings()

EXPENSE_ACCOUNT_QUEUE = "expense_accounts"

T = TypeVar("T")

_worker_loop: Optional[asyncio.AbstractEventLoop] = None

app = Celery(
    "firefly_expense_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

app.conf.update(
    # JSON only: payloads are transaction ids and summary dicts
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,

    # A job that dies with its worker is redelivered
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=settings.job_time_limit_seconds,

    worker_concurrency=1,
    worker_prefetch_multiplier=1,

    task_default_queue=EXPENSE_ACCOUNT_QUEUE,
    task_routes={
        "services.worker.tasks.assign_expense_account.*": {"queue": EXPENSE_ACCOUNT_QUEUE},
    },

    result_expires=3600,
)


def run_in_worker_loop(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on this process's long-lived event loop"""
    global _worker_loop

    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()

    return _worker_loop.run_until_complete(coro)


def close_worker_loop() -> None:
    global _worker_loop

    loop, _worker_loop = _worker_loop, None
    if loop is None or loop.is_closed():
        return

    try:
        loop.run_until_complete(loop.shutdown_asyncgens())
    finally:
        loop.close()


# Registers the task on the app
from services.worker.tasks import assign_expense_account  # noqa: E402,F401


@worker_process_init.connect
def init_worker(**kwargs):
    """Set up structured logging in each worker process"""
    configure_logging(settings.log_level)
    logger.info("expense_worker_starting",
                environment=settings.environment,
                ai_provider=settings.ai_provider,
                queue=EXPENSE_ACCOUNT_QUEUE,
                time_limit=settings.job_time_limit_seconds)


@worker_process_shutdown.connect
def shutdown_worker(**kwargs):
    """Close the worker event loop"""
    logger.info("expense_worker_shutting_down")
    try:
        close_worker_loop()
        logger.info("expense_worker_loop_closed")
    except Exception as e:
        logger.error("expense_worker_loop_close_failed", error=str(e))


if __name__ == "__main__":
    app.start()
