from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .errors import RemoteApiError, RetryExhaustedError

logger = logging.getLogger("shopping-bootstrap-retry")

DEFAULT_MAX_ATTEMPTS = 5

A = TypeVar("A")
R = TypeVar("R")


def quadratic_backoff(attempt: int) -> float:
    return float(attempt * attempt)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff: Callable[[int], float] = quadratic_backoff

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class RetryExecutor:
    """Runs a remote operation, backing off on transient Content API errors."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[A], R],
        argument: A,
        max_attempts: Optional[int] = None,
    ) -> R:
        """Call ``operation(argument)`` until it succeeds.

        Transient ``RemoteApiError``s sleep ``backoff(attempt)`` seconds before
        the next attempt; there is no sleep after the last one. Exhausting the
        attempts raises ``RetryExhaustedError``. Any other error propagates at
        once.
        """

        limit = self.policy.max_attempts if max_attempts is None else max_attempts
        if limit < 1:
            raise ValueError("max_attempts must be at least 1")

        attempt = 1
        while True:
            try:
                return operation(argument)
            except RemoteApiError as exc:
                if not exc.transient:
                    raise
                if attempt >= limit:
                    raise RetryExhaustedError(attempt, exc) from exc
                delay = self.policy.backoff(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s); retrying in %.0fs", attempt, limit, exc, delay
                )
                self._sleep(delay)
                attempt += 1
