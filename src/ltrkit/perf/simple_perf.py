import time
from functools import wraps
from typing import Any, Callable
import logging

# Use dedicated logger for performance indicators
logger = logging.getLogger("perf")


def perf_indicator(label: str, unit: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to log a short performance indicator for an operation.
    The wrapped function returns its payload unchanged; the count used for the
    throughput figure is `len(payload)` when the payload is sized, otherwise 1.
    """

    def _decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def _wrapper(*args, **kwargs):
            t0 = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_s = time.perf_counter() - t0

            count = len(result) if hasattr(result, "__len__") else 1
            rate_per_min = (count / elapsed_s) * 60.0 if elapsed_s > 0 else float("inf")
            logger.info(
                f"{label} {int(count)} {unit} in {elapsed_s*1000:.2f} ms ({rate_per_min:.1f} {unit}/min)"
            )
            return result

        return _wrapper

    return _decorator
