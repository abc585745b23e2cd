"""Thread pool for AI decision work.

Range estimation and Monte-Carlo win rates are CPU-bound, so decisions run
off the event loop. The pool is created on first use and can be shut down
(and later recreated) by short-lived callers such as the self-play harness.
"""

from __future__ import annotations

import asyncio
import os
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

__all__ = ["run_blocking", "shutdown_executor"]

T = TypeVar("T")

_DECISION_WORKERS = max(1, min(8, os.cpu_count() or 1))
_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _pool() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=_DECISION_WORKERS, thread_name_prefix="threecard-decide")
        return _executor


async def run_blocking(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Await ``func(*args, **kwargs)`` on the decision pool."""

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_pool(), partial(func, *args, **kwargs))


def shutdown_executor(*, wait: bool = True) -> None:
    """Release the pool threads; the next ``run_blocking`` starts a fresh pool."""

    global _executor
    with _executor_lock:
        pool, _executor = _executor, None
    if pool is not None:
        pool.shutdown(wait=wait)
