"""Backoff policy shared by every remote store call."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Union

import httpx

from stoya.config.models import RetrySettings

Outcome = Union[httpx.Response, httpx.TransportError]

HTTP_LOCKED = 423
HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True, slots=True)
class RetryDecision:
    """Verdict for a single request outcome.

    Attributes:
        retry: Whether the request should be issued again.
        delay: Seconds to wait before the next attempt.
        reason: Short label used in log lines.
    """

    retry: bool
    delay: float = 0.0
    reason: str = ""


Classifier = Callable[[Outcome, int], RetryDecision]

NO_RETRY = RetryDecision(retry=False)


class BackoffPolicy:
    """Bounded retry budget combined with an outcome classifier.

    ``classify`` receives the response (or transport error) and the 1-based
    number of the retry that would follow; the policy refuses any retry beyond
    ``max_retries`` regardless of what the classifier says.
    """

    def __init__(self, max_retries: int, classify: Classifier) -> None:
        self.max_retries = max(0, max_retries)
        self._classify = classify

    def decide(self, outcome: Outcome, attempt: int) -> RetryDecision:
        """Return the retry decision for ``outcome`` ahead of retry number ``attempt``."""
        if attempt > self.max_retries:
            return NO_RETRY
        return self._classify(outcome, attempt)

    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings,
        *,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> "BackoffPolicy":
        """Build the store policy: lock, rate-limit/server-error and network classes.

        Args:
            settings: Retry section of the configuration.
            uniform: Random source for the lock wait window.

        Returns:
            BackoffPolicy: Policy applying the configured delays.
        """

        def classify(outcome: Outcome, attempt: int) -> RetryDecision:
            if isinstance(outcome, httpx.TransportError):
                return RetryDecision(True, settings.network_delay_seconds, "network error")
            status = outcome.status_code
            if status == HTTP_LOCKED:
                delay = uniform(settings.lock_delay_min_seconds, settings.lock_delay_max_seconds)
                return RetryDecision(True, delay, "resource locked")
            if status == HTTP_TOO_MANY_REQUESTS or status >= 500:
                return RetryDecision(True, settings.rate_limit_step_seconds * attempt, f"status {status}")
            return NO_RETRY

        return cls(settings.max_retries, classify)


__all__ = ["BackoffPolicy", "RetryDecision", "Outcome", "NO_RETRY"]
