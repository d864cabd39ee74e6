"""Retry-with-delay primitive for flaky provider calls.

Retries a whole zero-argument operation with exponential backoff plus
jitter. Provider-agnostic: it never looks at what was raised unless the
caller passes a ``should_retry`` predicate.

Delay for attempt n (0-indexed) lies in [base * 2**n, base * 2**n * 1.3).
The jitter spreads out retries from concurrent requests that failed at
the same moment.

Sleeping blocks only the calling thread. Pass ``cancel_event`` to abort
pending retries from another thread; the last error is then re-raised.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger("readmegen.backoff")

T = TypeVar("T")

# Defaults — overridden per call by the generation client's settings.
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
JITTER_RATIO = 0.3


def compute_delay_ms(
    attempt: int,
    base_delay_ms: int,
    rng: Optional[random.Random] = None,
) -> float:
    """Backoff delay in milliseconds before retry number *attempt* + 1."""
    exponential = base_delay_ms * (2 ** attempt)
    jitter = (rng or random).random() * exponential * JITTER_RATIO
    return exponential + jitter


def run_with_backoff(
    operation: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    sleep: Optional[Callable[[float], None]] = None,
    rng: Optional[random.Random] = None,
    cancel_event: Optional[threading.Event] = None,
    label: str = "operation",
) -> T:
    """Call *operation* until it succeeds or the retry budget is spent.

    Args:
        operation: Zero-argument callable, retried as a whole.
        max_retries: Retries after the first attempt (0 = call once).
        base_delay_ms: Delay before the first retry; doubles each time.
        should_retry: Optional predicate; returning False re-raises at once.
        sleep: Seconds-based sleep function. Defaults to ``time.sleep``,
            or to waiting on *cancel_event* when one is given.
        rng: Source of jitter (anything with ``random()``).
        cancel_event: When set, no further retries are made.
        label: Name used in log lines.

    Raises:
        Exception: whatever *operation* raised on its final attempt.
    """
    attempt = 0

    while True:
        try:
            return operation()
        except Exception as exc:
            if attempt >= max_retries:
                raise
            if should_retry is not None and not should_retry(exc):
                raise
            if cancel_event is not None and cancel_event.is_set():
                logger.info("%s cancelled, not retrying", label)
                raise

            delay_ms = compute_delay_ms(attempt, base_delay_ms, rng)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %dms",
                label, attempt + 1, max_retries + 1, exc, round(delay_ms),
            )

            if sleep is not None:
                sleep(delay_ms / 1000)
                cancelled = cancel_event is not None and cancel_event.is_set()
            elif cancel_event is not None:
                cancelled = cancel_event.wait(delay_ms / 1000)
            else:
                time.sleep(delay_ms / 1000)
                cancelled = False

            if cancelled:
                logger.info("%s cancelled during backoff", label)
                raise
            attempt += 1
