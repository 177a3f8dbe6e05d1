"""Retry policies and circuit breakers for identifier generation and DB access.

Two kinds of failure are handled here and never share state:

* collisions on generated identifiers, retried quickly by a ``RetryPolicy``
  whose classifier matches one unique field;
* connectivity failures, retried by a slower policy wrapped in a
  ``CircuitBreaker`` that short-circuits calls after repeated failures.

Anything a classifier does not match propagates on the first failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeVar

from snippy.config import Settings
from snippy.core.db_kernel import is_collision_on, is_transient_connection_error

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

ErrorClassifier = Callable[[BaseException], bool]
SleepFn = Callable[[float], Awaitable[None]]


class RetryExhaustedError(RuntimeError):
    """Every attempt allowed by a policy failed with a retryable error."""

    def __init__(self, policy_name: str, attempts: int, last_error: BaseException) -> None:
        self.policy_name = policy_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{policy_name}: gave up after {attempts} attempts ({last_error})"
        )


class BrokenCircuitError(RuntimeError):
    """Raised without calling the operation while a breaker is open."""

    def __init__(self, breaker_name: str, retry_in: float) -> None:
        self.breaker_name = breaker_name
        self.retry_in = retry_in
        super().__init__(f"{breaker_name}: circuit open, retry in {retry_in:.1f}s")


class RetryObserver(Protocol):
    """Observability port fed by retry policies."""

    def on_retry(
        self,
        policy_name: str,
        attempt: int,
        delay: float,
        error: BaseException,
    ) -> None:
        """Called before sleeping ahead of another attempt."""

    def on_exhausted(self, policy_name: str, attempts: int, error: BaseException) -> None:
        """Called once when a policy gives up."""


class LoggingRetryObserver:
    """Observer that logs retry events and counts them per policy."""

    def __init__(self) -> None:
        self.retries: Counter[str] = Counter()
        self.exhaustions: Counter[str] = Counter()

    def on_retry(
        self,
        policy_name: str,
        attempt: int,
        delay: float,
        error: BaseException,
    ) -> None:
        self.retries[policy_name] += 1
        logger.warning(
            "Retryable failure; retrying operation",
            extra={
                "policy": policy_name,
                "attempt": attempt,
                "delay_ms": round(delay * 1000, 2),
                "error": str(error),
            },
        )

    def on_exhausted(self, policy_name: str, attempts: int, error: BaseException) -> None:
        self.exhaustions[policy_name] += 1
        logger.error(
            "Retry attempts exhausted",
            extra={"policy": policy_name, "attempts": attempts, "error": str(error)},
        )

    def snapshot(self) -> dict[str, dict[str, int]]:
        """Return retry/exhaustion counts per policy."""
        names = set(self.retries) | set(self.exhaustions)
        return {
            name: {"retries": self.retries[name], "exhaustions": self.exhaustions[name]}
            for name in sorted(names)
        }


def _notify(callback: Callable[[], None], *, policy_name: str) -> None:
    # Observers are fire-and-forget.
    try:
        callback()
    except Exception:
        logger.exception("Retry observer failed", extra={"policy": policy_name})


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential-backoff retry for errors matching ``classifier``."""

    name: str
    max_attempts: int
    initial_delay: float
    max_delay: float
    classifier: ErrorClassifier
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (zero-based)."""
        return min(self.max_delay, self.initial_delay * self.multiplier**attempt)

    async def execute(
        self,
        operation: Callable[[], Awaitable[_ResultT]],
        *,
        observer: RetryObserver | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> _ResultT:
        """Run ``operation``, retrying classified failures up to ``max_attempts`` calls."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as exc:
                if not self.classifier(exc):
                    raise
                if attempt == self.max_attempts:
                    if observer is not None:
                        _notify(
                            lambda: observer.on_exhausted(self.name, attempt, exc),
                            policy_name=self.name,
                        )
                    raise RetryExhaustedError(self.name, attempt, exc) from exc

                delay = self.backoff(attempt - 1)
                if observer is not None:
                    _notify(
                        lambda: observer.on_retry(self.name, attempt, delay, exc),
                        policy_name=self.name,
                    )
                await sleep(delay)

        raise RuntimeError(f"Retry loop exhausted unexpectedly for policy: {self.name}")


class BreakerState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Consecutive-failure breaker with a fixed half-open delay."""

    name: str
    classifier: ErrorClassifier
    threshold: int
    half_open_after: float
    clock: Callable[[], float] = time.monotonic
    state: BreakerState = field(default=BreakerState.CLOSED, init=False)
    consecutive_failures: int = field(default=0, init=False)
    opened_at: float | None = field(default=None, init=False)
    _trial_in_flight: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError("threshold must be >= 1")

    def _admit(self) -> bool:
        """Let a call through; returns whether it is the half-open trial."""
        if self.state is BreakerState.OPEN:
            elapsed = self.clock() - (self.opened_at or 0.0)
            if elapsed < self.half_open_after:
                raise BrokenCircuitError(self.name, self.half_open_after - elapsed)
            self.state = BreakerState.HALF_OPEN
            logger.info("Circuit half-open; allowing trial call", extra={"breaker": self.name})

        if self.state is BreakerState.HALF_OPEN:
            if self._trial_in_flight:
                raise BrokenCircuitError(self.name, 0.0)
            self._trial_in_flight = True
            return True
        return False

    def _record_success(self) -> None:
        if self.state is not BreakerState.CLOSED:
            logger.info("Circuit closed", extra={"breaker": self.name})
        self.state = BreakerState.CLOSED
        self.consecutive_failures = 0
        self.opened_at = None

    def _record_failure(self) -> None:
        self.consecutive_failures += 1
        if self.state is BreakerState.HALF_OPEN or self.consecutive_failures >= self.threshold:
            self.state = BreakerState.OPEN
            self.opened_at = self.clock()
            logger.error(
                "Circuit opened",
                extra={
                    "breaker": self.name,
                    "consecutive_failures": self.consecutive_failures,
                    "half_open_after_s": self.half_open_after,
                },
            )

    async def execute(self, operation: Callable[[], Awaitable[_ResultT]]) -> _ResultT:
        """Run ``operation`` unless the circuit is open."""
        is_trial = self._admit()
        try:
            result = await operation()
        except Exception as exc:
            # Unclassified errors leave the breaker untouched.
            if self.classifier(exc) and self._owns_outcome(is_trial):
                self._record_failure()
            raise
        else:
            if self._owns_outcome(is_trial):
                self._record_success()
            return result
        finally:
            if is_trial:
                self._trial_in_flight = False

    def _owns_outcome(self, is_trial: bool) -> bool:
        # Calls admitted before the circuit opened finish without a say once it has.
        return is_trial or self.state is BreakerState.CLOSED


def _exhausted_connectivity(exc: BaseException) -> bool:
    if isinstance(exc, RetryExhaustedError):
        return is_transient_connection_error(exc.last_error)
    return is_transient_connection_error(exc)


@dataclass(frozen=True)
class ConnectionPolicy:
    """Circuit breaker wrapped around a connectivity retry policy."""

    breaker: CircuitBreaker
    retry: RetryPolicy

    async def execute(
        self,
        operation: Callable[[], Awaitable[_ResultT]],
        *,
        observer: RetryObserver | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> _ResultT:
        """Retry connectivity failures, counting exhausted runs against the breaker."""
        return await self.breaker.execute(
            lambda: self.retry.execute(operation, observer=observer, sleep=sleep)
        )


@dataclass(frozen=True)
class ResiliencePolicies:
    """Policies shared by the process, built once at startup."""

    short_id: RetryPolicy
    username: RetryPolicy
    connection: ConnectionPolicy
    observer: RetryObserver
    sleep: SleepFn = asyncio.sleep


SHORT_ID_POLICY_NAME = "short_id_collision"
USERNAME_POLICY_NAME = "username_collision"
DB_CONNECTION_POLICY_NAME = "db_connection"


def build_resilience_policies(
    settings: Settings,
    *,
    observer: RetryObserver | None = None,
) -> ResiliencePolicies:
    """Build the collision and connectivity policies from settings."""
    short_id = RetryPolicy(
        name=SHORT_ID_POLICY_NAME,
        max_attempts=settings.short_id_retry_attempts,
        initial_delay=settings.short_id_retry_initial_delay,
        max_delay=settings.short_id_retry_max_delay,
        classifier=is_collision_on("short_id"),
    )
    username = RetryPolicy(
        name=USERNAME_POLICY_NAME,
        max_attempts=settings.username_retry_attempts,
        initial_delay=settings.username_retry_initial_delay,
        max_delay=settings.username_retry_max_delay,
        classifier=is_collision_on("user_name"),
    )
    connection = ConnectionPolicy(
        breaker=CircuitBreaker(
            name=DB_CONNECTION_POLICY_NAME,
            classifier=_exhausted_connectivity,
            threshold=settings.db_connection_breaker_threshold,
            half_open_after=settings.db_connection_breaker_half_open_after,
        ),
        retry=RetryPolicy(
            name=DB_CONNECTION_POLICY_NAME,
            max_attempts=settings.db_connection_retry_attempts,
            initial_delay=settings.db_connection_retry_initial_delay,
            max_delay=settings.db_connection_retry_max_delay,
            classifier=is_transient_connection_error,
        ),
    )
    return ResiliencePolicies(
        short_id=short_id,
        username=username,
        connection=connection,
        observer=observer or LoggingRetryObserver(),
    )
