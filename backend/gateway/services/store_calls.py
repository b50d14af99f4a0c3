"""
Threadpool bridge for blocking store calls, with timing and outcome metrics.
"""
import time
from typing import Any, Callable

from starlette.concurrency import run_in_threadpool

from gateway.storage.base import ObjectStoreError
from gateway.utils.metrics import store_operation_duration_seconds, store_operations_total


async def call_store(operation: str, func: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking store method off the event loop.

    ``ObjectStoreError`` propagates unchanged after being counted.
    """
    start_time = time.time()
    try:
        result = await run_in_threadpool(func, *args)
    except ObjectStoreError:
        store_operations_total.labels(operation=operation, outcome="error").inc()
        raise
    finally:
        store_operation_duration_seconds.labels(operation=operation).observe(time.time() - start_time)

    store_operations_total.labels(operation=operation, outcome="success").inc()
    return result
