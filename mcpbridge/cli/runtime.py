"""Shared process plumbing for the stdio entry points: signals and exit."""

import asyncio
import logging
import signal
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


async def run_until_signal(main: Coroutine[Any, Any, None]) -> bool:
    """Run ``main`` until it completes or SIGINT/SIGTERM arrives.

    On a signal, ``main`` is cancelled; in-flight requests are abandoned.

    Args:
        main: The coroutine to run (typically MessageLoop.run()).

    Returns:
        True if a shutdown signal ended the run, False if ``main`` finished.
    """
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    installed: list[signal.Signals] = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            pass

    main_task = asyncio.create_task(main)
    stop_task = asyncio.create_task(stop.wait())
    try:
        await asyncio.wait({main_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    if stop.is_set() and not main_task.done():
        logger.info("Received shutdown signal, cleaning up...")
        main_task.cancel()
        try:
            await main_task
        except asyncio.CancelledError:
            pass
        return True

    stop_task.cancel()
    main_task.result()
    return False
