"""Bounded execution for multi-step store flows."""
import threading
import logging
from typing import Any, Callable

from app.core.errors import OperationTimeout

logger = logging.getLogger(__name__)


def run_with_timeout(fn: Callable[..., Any], timeout_sec: float, label: str, *args, **kwargs) -> Any:
    """Run fn in a worker thread and wait at most timeout_sec for it.

    Raises OperationTimeout when the bound expires. The worker is not cancelled:
    store writes it already committed stay in place.
    """
    outcome = {}

    def _target():
        try:
            outcome["value"] = fn(*args, **kwargs)
        except BaseException as e:  # re-raised in the caller's thread
            outcome["error"] = e

    worker = threading.Thread(target=_target, name=f"bounded-{label}", daemon=True)
    worker.start()
    worker.join(timeout=timeout_sec)
    if worker.is_alive():
        logger.warning(f"{label} exceeded {timeout_sec}s; leaving worker to finish in background")
        raise OperationTimeout(f"{label} timed out after {timeout_sec:g} seconds", code="TIMEOUT")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")
