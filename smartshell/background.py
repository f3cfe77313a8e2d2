"""
Runs one blocking call on a worker thread while the caller animates a spinner.

The worker hands back exactly one item over a queue: either the return value
or the exception it raised. The caller re-raises worker exceptions, so code
around ``call_in_background`` handles errors the same way it would for a
direct call.
"""
import logging
import queue
import threading
from typing import Any, Callable, Optional

from .errors import BackgroundCallError
from .ui import TerminalSpinner

logger = logging.getLogger(__name__)

SPINNER_INTERVAL = 0.1


def _worker(results: "queue.Queue", func: Callable, args, kwargs):
    try:
        value = func(*args, **kwargs)
    except Exception as e:
        results.put((False, e))
    else:
        results.put((True, value))


def call_in_background(
    func: Callable[..., Any],
    *args,
    spinner: Optional[TerminalSpinner] = None,
    interval: float = SPINNER_INTERVAL,
    **kwargs,
) -> Any:
    """
    Calls ``func(*args, **kwargs)`` on a worker thread and waits for it.

    While waiting, one spinner frame is drawn every ``interval`` seconds.
    There is no cancellation: the worker runs until ``func`` returns.

    Args:
        func: The blocking callable.
        spinner: Where to draw progress. None draws nothing but keeps the same cadence.
        interval: Seconds between spinner frames.

    Returns:
        Whatever ``func`` returned.

    Raises:
        BackgroundCallError: The worker ended without delivering a result.
        Exception: Any exception raised by ``func``, re-raised unchanged.
    """
    spinner = spinner or TerminalSpinner()
    results: "queue.Queue" = queue.Queue(maxsize=1)
    worker = threading.Thread(
        target=_worker, args=(results, func, args, kwargs), name="smartshell-call", daemon=True
    )
    worker.start()
    logger.debug(f"Started worker thread {worker.name}")

    index = 0
    try:
        while True:
            try:
                ok, value = results.get(timeout=interval)
                break
            except queue.Empty:
                pass

            if not worker.is_alive():
                # The worker may have delivered just before exiting.
                try:
                    ok, value = results.get_nowait()
                    break
                except queue.Empty:
                    logger.error("Worker thread exited without a result")
                    raise BackgroundCallError("Background thread failed")

            spinner.render(index)
            index += 1
    finally:
        spinner.clear()

    if ok:
        return value
    raise value
