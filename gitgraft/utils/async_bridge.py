"""Async bridge utilities for running async code from sync contexts.

Deferred values may be coroutine functions (for example an edit that has to
read another file before it can compute its result). The pipeline itself is
synchronous and fans per-path work out over a ThreadPoolExecutor, so
awaitables are driven to completion here.
"""

import asyncio
import inspect
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar, Coroutine, Any, Awaitable, Union

T = TypeVar('T')


def _run_in_new_loop(coro: Coroutine[Any, Any, T]) -> T:
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        loop.close()
        asyncio.set_event_loop(None)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine from a synchronous context.

    It creates a new event loop for each call to avoid issues with nested
    event loops or reusing closed loops. When the calling thread is already
    running an event loop (a synchronous pipeline run from async code), the
    coroutine is driven on a worker thread and this call blocks until it
    finishes.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Raises:
        Any exception raised by the coroutine
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return _run_in_new_loop(coro)

    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(_run_in_new_loop, coro).result()


def wait_for_value(value: Union[T, Awaitable[T]]) -> T:
    """Return value unchanged, or the result of awaiting it if it is awaitable.

    Args:
        value: A plain value or an awaitable

    Returns:
        The plain value
    """
    if not inspect.isawaitable(value):
        return value

    async def await_value():
        return await value

    return run_async(await_value())
