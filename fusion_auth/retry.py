"""
Caller-side retry for access token issuance.

Issuance itself makes exactly one attempt. Callers that want resilience
against a flaky token endpoint wrap it here: only exchange failures with a
5xx status are retried, and each retry signs a fresh assertion.
"""

import functools
import logging
import random
import time
from typing import Callable, TypeVar

from fusion_auth.core.exceptions import ExchangeError
from fusion_auth.core.issuer import issue_access_token

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 13
DEFAULT_INITIAL_DELAY = 0.1


def retry_on_server_error(
    func: Callable[..., T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    backoff_factor: float = 2.0,
    max_delay: float = 5.0,
    jitter: float = 0.7,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[..., T]:
    """
    Wrap ``func`` so 5xx exchange failures are retried with backoff.

    Args:
        func: Callable to wrap, typically :func:`issue_access_token`.
        max_attempts: Total attempts including the first.
        initial_delay: Delay before the first retry, in seconds.
        backoff_factor: Multiplier applied to the delay after each retry.
        max_delay: Upper bound of the base delay, in seconds.
        jitter: Up to this fraction of the delay is added at random.
        sleep: Sleep function (injectable for tests).

    Returns:
        Wrapped callable. The last error is raised when attempts run out;
        any other error is raised immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        delay = initial_delay
        for attempt in range(1, max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except ExchangeError as e:
                if not e.is_server_error or attempt == max_attempts:
                    raise
                wait = delay * (1 + jitter * random.random())
                logger.warning(
                    "Token endpoint returned %s (attempt %d/%d), retrying in %.2fs",
                    e.status_code,
                    attempt,
                    max_attempts,
                    wait,
                )
                sleep(wait)
                delay = min(delay * backoff_factor, max_delay)

    return wrapper


def issue_access_token_with_retry(*args, **kwargs) -> str:
    """:func:`issue_access_token` with the default retry policy."""
    return retry_on_server_error(issue_access_token)(*args, **kwargs)
