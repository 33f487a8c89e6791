"""
Admission governor for CanLII API requests.

Per the CanLII API terms of use:
- 1 request in flight at a time
- 2 requests per second (one admission every 500 ms)
- 5,000 requests per day

Every outbound call must hold the governor's single token. Callers that find
the token taken wait in a FIFO queue and receive it directly from release().
The spacing delay is served while holding the token, so admissions stay
strictly serialized.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)


class QuotaExceededError(Exception):
    """Raised when the daily admission quota is exhausted."""

    def __init__(self, message: str, daily_quota: int = 0, reset_key: str = "") -> None:
        super().__init__(message)
        self.daily_quota = daily_quota
        self.reset_key = reset_key


class GovernorStateError(RuntimeError):
    """Raised when the governor is used in a way that breaks its invariants.

    Releasing a token that is not held is a programming error, not a
    recoverable condition.
    """


@dataclass
class AdmissionGovernorConfig:
    """Limits enforced by the admission governor.

    Defaults are the published CanLII limits.
    """

    max_concurrent_requests: int = 1
    min_interval_ms: int = 500  # 2 req/s ceiling
    daily_quota: int = 5000

    def __post_init__(self) -> None:
        if self.max_concurrent_requests != 1:
            raise ValueError(
                f"max_concurrent_requests must be 1, got {self.max_concurrent_requests}"
            )
        if self.min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {self.min_interval_ms}")
        if self.daily_quota < 1:
            raise ValueError(f"daily_quota must be >= 1, got {self.daily_quota}")


@dataclass
class QuotaCounter:
    """Admissions counted in the current quota epoch (one local calendar day)."""

    count: int = 0
    reset_key: str = ""


@dataclass
class GovernorMetrics:
    """Metrics for admission governor observability."""

    # Counters
    requests_admitted: int = 0
    requests_deferred: int = 0  # Waited in queue, then admitted
    requests_rejected_quota: int = 0
    spacing_delays: int = 0  # Admissions that had to wait out the interval

    # Gauges
    current_queue_depth: int = 0
    current_in_flight: int = 0
    daily_count: int = 0

    # Wait time accumulators (queue + spacing)
    total_wait_ms: int = 0
    max_wait_ms: int = 0


@dataclass
class AdmissionGovernor:
    """
    Serializes, spaces and caps outbound CanLII requests.

    Usage:
        governor = AdmissionGovernor()
        async with governor.permit():
            response = await session.get(url)

    State is only touched between await points, so every transition is
    atomic with respect to other tasks on the event loop.
    """

    config: AdmissionGovernorConfig = field(default_factory=AdmissionGovernorConfig)

    # Token and spacing state
    _in_use: bool = field(default=False, init=False)
    _last_request_ms: int | None = field(default=None, init=False)

    # Quota state
    _quota: QuotaCounter = field(default_factory=QuotaCounter, init=False)

    # FIFO of waiters; each future is resolved exactly once, by release()
    _waiters: deque[asyncio.Future[None]] = field(default_factory=deque, init=False)

    metrics: GovernorMetrics = field(default_factory=GovernorMetrics, init=False)

    # Clock injection for simulated-time tests
    _time_fn: Callable[[], int] | None = field(default=None)
    _sleep_fn: Callable[[float], Awaitable[None]] | None = field(default=None)

    def __post_init__(self) -> None:
        self._quota.reset_key = self._epoch_key(self._now_ms())

    def _now_ms(self) -> int:
        """Get current time in milliseconds."""
        if self._time_fn is not None:
            return self._time_fn()
        return int(time.time() * 1000)

    async def _sleep(self, seconds: float) -> None:
        if self._sleep_fn is not None:
            await self._sleep_fn(seconds)
        else:
            await asyncio.sleep(seconds)

    @staticmethod
    def _epoch_key(now_ms: int) -> str:
        """Local calendar day of the given instant."""
        return datetime.fromtimestamp(now_ms / 1000).date().isoformat()

    def _roll_epoch(self, now_ms: int) -> None:
        key = self._epoch_key(now_ms)
        if key != self._quota.reset_key:
            logger.info(
                "Quota epoch rolled over",
                extra={
                    "previous_epoch": self._quota.reset_key,
                    "epoch": key,
                    "previous_count": self._quota.count,
                },
            )
            self._quota.count = 0
            self._quota.reset_key = key
            self.metrics.daily_count = 0

    def _quota_error(self) -> QuotaExceededError:
        self.metrics.requests_rejected_quota += 1
        logger.warning(
            "Daily quota exhausted, request rejected",
            extra={"daily_quota": self.config.daily_quota, "epoch": self._quota.reset_key},
        )
        return QuotaExceededError(
            f"CanLII daily API limit ({self.config.daily_quota} requests) reached",
            daily_quota=self.config.daily_quota,
            reset_key=self._quota.reset_key,
        )

    def _hand_off(self) -> None:
        """Pass the held token to the next live waiter, or free it."""
        while self._waiters:
            waiter = self._waiters.popleft()
            self.metrics.current_queue_depth = len(self._waiters)
            if not waiter.done():
                waiter.set_result(None)
                return
        self._in_use = False
        self.metrics.current_in_flight = 0

    async def acquire(self) -> None:
        """
        Wait for an admission. Returns holding the token.

        The caller must call release() exactly once afterwards. Prefer
        `permit()`, which does that on every exit path.

        Raises:
            QuotaExceededError: If the daily quota is exhausted, either on
                entry (fail-fast, nothing consumed) or when the token is
                finally granted after a queue wait.
        """
        start_ms = self._now_ms()

        # 1. Quota gate (fail-fast, ahead of the queue)
        self._roll_epoch(start_ms)
        if self._quota.count >= self.config.daily_quota:
            raise self._quota_error()

        # 2. Token
        deferred = False
        if self._in_use:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            self.metrics.current_queue_depth = len(self._waiters)
            logger.debug("Token busy, queued", extra={"queue_depth": len(self._waiters)})
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter.cancelled():
                    # Withdrawn while still queued
                    with contextlib.suppress(ValueError):
                        self._waiters.remove(waiter)
                    self.metrics.current_queue_depth = len(self._waiters)
                else:
                    # Granted, but cancelled before resuming: pass it on
                    self._hand_off()
                raise
            deferred = True
        else:
            self._in_use = True
        self.metrics.current_in_flight = 1

        try:
            # 3. Quota re-check at grant time; the queue wait may have been long
            if deferred:
                self._roll_epoch(self._now_ms())
                if self._quota.count >= self.config.daily_quota:
                    raise self._quota_error()

            # 4. Spacing, served while holding the token
            if self._last_request_ms is not None:
                elapsed_ms = self._now_ms() - self._last_request_ms
                if elapsed_ms < self.config.min_interval_ms:
                    self.metrics.spacing_delays += 1
                    await self._sleep((self.config.min_interval_ms - elapsed_ms) / 1000)
        except BaseException:
            self._hand_off()
            raise

        # 5. Admit
        now_ms = self._now_ms()
        self._roll_epoch(now_ms)
        self._last_request_ms = now_ms
        self._quota.count += 1

        waited_ms = now_ms - start_ms
        self.metrics.requests_admitted += 1
        if deferred:
            self.metrics.requests_deferred += 1
        self.metrics.total_wait_ms += waited_ms
        self.metrics.max_wait_ms = max(self.metrics.max_wait_ms, waited_ms)
        self.metrics.daily_count = self._quota.count

    def release(self) -> None:
        """
        Give the token back.

        Hands it straight to the oldest queued caller if there is one.

        Raises:
            GovernorStateError: If the token is not currently held.
        """
        if not self._in_use:
            raise GovernorStateError("release() called without a held token")
        self._hand_off()

    @contextlib.asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """
        Async context manager for safe acquire/release.

        Usage:
            async with governor.permit():
                ...  # exactly one upstream call
            # Token released here, even on exception

        Raises:
            QuotaExceededError: If the daily quota is exhausted.
        """
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    @property
    def in_flight(self) -> bool:
        return self._in_use

    @property
    def queue_depth(self) -> int:
        return len(self._waiters)

    @property
    def daily_count(self) -> int:
        return self._quota.count

    @property
    def last_request_ms(self) -> int | None:
        return self._last_request_ms

    def get_status(self) -> dict[str, int | str | bool | None]:
        """Get current governor status for observability."""
        self._roll_epoch(self._now_ms())
        return {
            "daily_count": self._quota.count,
            "daily_quota": self.config.daily_quota,
            "reset_key": self._quota.reset_key,
            "in_flight": self._in_use,
            "queue_depth": len(self._waiters),
            "last_request_ms": self._last_request_ms,
        }

    def reset(self) -> None:
        """Reset governor to initial state.

        Raises:
            GovernorStateError: If callers are still queued.
        """
        if self._waiters:
            raise GovernorStateError(f"cannot reset with {len(self._waiters)} queued callers")
        self._in_use = False
        self._last_request_ms = None
        self._quota = QuotaCounter(reset_key=self._epoch_key(self._now_ms()))
        self.metrics = GovernorMetrics()
