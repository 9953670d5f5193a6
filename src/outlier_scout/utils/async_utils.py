"""Bridge from synchronous entry points (Celery tasks, CLI) to async services."""

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

_thread_state = threading.local()


def _thread_loop() -> asyncio.AbstractEventLoop:
    loop: asyncio.AbstractEventLoop | None = getattr(_thread_state, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        _thread_state.loop = loop
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion on this thread's long-lived event loop.

    A worker thread keeps one loop across tasks. The YouTube client's httpx
    connection pool is bound to the loop it was opened on, so the loop is
    never closed between calls.

    Raises:
        RuntimeError: If called while an event loop is already running here.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return _thread_loop().run_until_complete(coro)

    coro.close()
    raise RuntimeError("run_async() cannot be called from inside a running event loop")
