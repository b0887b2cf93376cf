"""Best-effort side effects.

Notices, notification rows and telemetry must never block or roll back the
operation that triggered them.  Routing them through these helpers makes the
"logged and swallowed" contract explicit: callers get a ``BestEffortResult``
instead of an exception.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# The loop keeps only weak references to tasks.
_pending_tasks: set["asyncio.Task[Any]"] = set()


@dataclass(frozen=True)
class BestEffortResult:
    ok: bool
    value: Any = None
    error: str | None = None


async def run_best_effort(
    fn: Callable[..., Any],
    *args: Any,
    label: str,
    **kwargs: Any,
) -> BestEffortResult:
    """Call ``fn`` and convert any failure into a result.

    Coroutine functions are awaited on the loop; plain callables (sync
    Supabase writes) run in a worker thread.
    """
    try:
        if inspect.iscoroutinefunction(fn):
            value = await fn(*args, **kwargs)
        else:
            value = await asyncio.to_thread(fn, *args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
    except Exception as exc:  # noqa: BLE001
        logger.warning("Best-effort %s failed: %s", label, exc)
        return BestEffortResult(ok=False, error=str(exc) or exc.__class__.__name__)
    return BestEffortResult(ok=True, value=value)


def _log_detached_failure(label: str) -> Callable[["asyncio.Task[Any]"], None]:
    def _callback(task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Detached %s failed: %s", label, exc)

    return _callback


def spawn_detached(coro: Awaitable[Any], *, label: str) -> "asyncio.Task[Any]":
    """Schedule ``coro`` without awaiting it; failures are logged and discarded."""
    task = asyncio.ensure_future(coro)
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)
    task.add_done_callback(_log_detached_failure(label))
    return task
