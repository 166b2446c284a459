"""Run a blocking operation against a deadline.

The operation runs in a worker thread and races a timer. Whichever settles
first wins; a losing operation is abandoned, not cancelled, so it must be an
idempotent read or a side-effect-free call (or a single-row write whose late
completion is harmless).
"""

from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class DeadlineStatus(str, Enum):
    OK = "ok"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class DeadlineResult:
    status: DeadlineStatus
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is DeadlineStatus.OK

    def describe(self) -> str:
        if self.status is DeadlineStatus.TIMED_OUT:
            return "operation timed out"
        if self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        return self.status.value


async def run_with_deadline(fn: Callable[..., Any], timeout: float, *args, **kwargs) -> DeadlineResult:
    """Call ``fn(*args, **kwargs)`` in a thread, bounded by ``timeout`` seconds.

    Never raises for failures of ``fn``; the outcome is tagged instead.
    """
    task = asyncio.ensure_future(asyncio.to_thread(functools.partial(fn, *args, **kwargs)))
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        # Abandon: the thread keeps running, its result is discarded.
        task.add_done_callback(_discard_result)
        return DeadlineResult(DeadlineStatus.TIMED_OUT)
    error = task.exception()
    if error is not None:
        return DeadlineResult(DeadlineStatus.FAILED, error=error)
    return DeadlineResult(DeadlineStatus.OK, value=task.result())


def _discard_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()
