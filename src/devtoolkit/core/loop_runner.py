# src/devtoolkit/core/loop_runner.py
from __future__ import annotations

import asyncio
import threading
from typing import Optional, Any, Coroutine

_MAIN_LOOP: Optional[asyncio.AbstractEventLoop] = None
_THREAD: Optional[threading.Thread] = None


def ensure_background_loop() -> asyncio.AbstractEventLoop:
    """
    Ensures a persistent asyncio event loop is running on a background thread
    and returns it. The store coordinator's worker task lives on this loop, so
    synchronous callers (the command line) reach it through run_on_main_loop.
    """
    global _MAIN_LOOP, _THREAD
    if _MAIN_LOOP is not None:
        return _MAIN_LOOP

    loop = asyncio.new_event_loop()

    def _run_loop(loop_: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop_)
        loop_.run_forever()

    t = threading.Thread(target=_run_loop, args=(loop,), name="devtoolkit-loop", daemon=True)
    t.start()

    _MAIN_LOOP = loop
    _THREAD = t
    return loop


def run_on_main_loop(coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
    """
    Executes a coroutine on the background loop and waits for its result.

    Args:
        coro: The coroutine to execute.
        timeout (float | None): Optional timeout in seconds to wait for the result.

    Raises:
        RuntimeError: If ensure_background_loop() has not been called.
    """
    if _MAIN_LOOP is None:
        coro.close()
        raise RuntimeError("Background loop is not running; call ensure_background_loop() first")
    fut = asyncio.run_coroutine_threadsafe(coro, _MAIN_LOOP)
    return fut.result(timeout)


def shutdown_background_loop() -> None:
    """Stops the background loop and waits for its thread to finish."""
    global _MAIN_LOOP, _THREAD
    if _MAIN_LOOP is None:
        return
    _MAIN_LOOP.call_soon_threadsafe(_MAIN_LOOP.stop)
    if _THREAD is not None:
        _THREAD.join(timeout=5)
    _MAIN_LOOP.close()
    _MAIN_LOOP = None
    _THREAD = None
