"""Async bridge between Click (sync) and the async backup pipeline."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def run_command(coro_factory: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """Run a coroutine to completion, cancelling it on SIGINT or SIGTERM.

    Cancellation unwinds the pipeline normally, so in-flight requests are
    abandoned and temporary files are removed.

    Args:
        coro_factory: Callable returning the coroutine to execute.

    Returns:
        The return value of the coroutine.

    Raises:
        asyncio.CancelledError: If a stop signal arrived.
        KeyboardInterrupt: If interrupted where no signal handler could be
            installed.
    """

    async def _run() -> T:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        installed: list[signal.Signals] = []
        if task is not None:
            for sig in _STOP_SIGNALS:
                # Unsupported on Windows event loops and outside the main thread
                with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                    loop.add_signal_handler(sig, task.cancel)
                    installed.append(sig)
        try:
            return await coro_factory()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    return asyncio.run(_run())
