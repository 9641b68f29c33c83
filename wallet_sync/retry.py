"""Bounded retry with exponential backoff for remote calls."""

import logging
import random
import time
from typing import Callable, Tuple, Type, TypeVar

from wallet_sync.errors import TransientNetworkError

log = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    func: Callable[..., T],
    *args,
    attempts: int = 5,
    backoff: float = 1.0,
    max_backoff: float = 30.0,
    retry_on: Tuple[Type[BaseException], ...] = (TransientNetworkError,),
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> T:
    """Call `func`, retrying on `retry_on` errors.

    Args:
        func: Remote operation to call
        attempts: Total number of calls allowed (at least 1)
        backoff: Delay before the first retry, in seconds
        max_backoff: Upper bound for the delay
        retry_on: Exception types that trigger a retry; anything else propagates
        sleep: Sleep function (injected by tests)

    Returns:
        Whatever `func` returns

    Raises:
        The last `retry_on` error once attempts are exhausted
    """
    attempts = max(1, attempts)
    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except retry_on as e:
            if attempt >= attempts:
                log.error("Giving up on %s after %d attempt(s): %s", _name(func), attempt, e)
                raise
            jitter = random.uniform(0, backoff / 2)
            log.warning(
                "[Retry %d/%d] %s failed: %s: %s",
                attempt,
                attempts - 1,
                _name(func),
                type(e).__name__,
                e,
            )
            sleep(backoff + jitter)
            backoff = min(backoff * 2, max_backoff)
            attempt += 1


def _name(func: Callable) -> str:
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)
