"""
Backoff for LeadForge's outbound HTTP calls.

Page fetches run inside a resolver's wall-clock budget, so a retry is only
attempted when its wait still leaves time for the request itself. Callers
without a budget (the webhook) pass no ``time_left`` and always wait.
"""

import logging
import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from .config import RetryConfig

T = TypeVar("T")


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """
    Seconds to wait after failed attempt number ``attempt`` (0-based).

    base * exponential_base ** attempt, capped at max_delay. Jitter scales
    the result by 0.75-1.25 so concurrent workers spread out.
    """
    delay = min(
        config.base_delay_seconds * (config.exponential_base ** attempt),
        config.max_delay_seconds,
    )
    if config.jitter:
        delay *= 0.75 + random.random() * 0.5
    return delay


def call_with_retries(
    func: Callable[[], T],
    config: RetryConfig,
    retry_on: Tuple[Type[Exception], ...],
    logger: Optional[logging.Logger] = None,
    label: str = "request",
    time_left: Optional[Callable[[], float]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds or retries run out.

    Only exceptions in ``retry_on`` are retried; anything else propagates at
    once. When ``time_left`` is given and the next wait would use up the
    remaining budget, the current error is raised instead of sleeping.
    """
    attempts = config.max_retries + 1
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as e:
            if attempt + 1 == attempts:
                if logger:
                    logger.error(f"{label} failed after {attempts} attempts: {type(e).__name__}: {e}")
                raise

            delay = backoff_delay(attempt, config)
            if time_left is not None and delay >= time_left():
                if logger:
                    logger.warning(f"{label} failed: {type(e).__name__}: {e}. No budget left to retry")
                raise

            if logger:
                logger.warning(
                    f"{label} failed (attempt {attempt + 1}/{attempts}): "
                    f"{type(e).__name__}: {e}. Retrying in {delay:.1f}s"
                )
            sleep(delay)
