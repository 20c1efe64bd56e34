from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, TypeVar

_T = TypeVar("_T")

_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="media-search-deadline")


class DeadlineExceeded(TimeoutError):
    """Raised when a guarded call does not finish in time."""


def run_with_deadline(kind: str, fn: Callable[[], _T], timeout_s: float) -> _T:
    """Run *fn* and give up waiting after *timeout_s* seconds (0 disables)."""
    if timeout_s <= 0:
        return fn()
    future = _EXECUTOR.submit(fn)
    try:
        return future.result(timeout=timeout_s)
    except FutureTimeoutError as exc:
        # A call that already started cannot be interrupted.
        still_running = not future.cancel()
        detail = (
            "; the call could not be cancelled and is still running"
            if still_running
            else ""
        )
        raise DeadlineExceeded(
            f"{kind} timed out after {timeout_s:.2f}s{detail}"
        ) from exc
