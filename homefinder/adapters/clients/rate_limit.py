# homefinder/adapters/clients/rate_limit.py
from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from ...domain.errors import RateLimitError

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_DELAY_S = 5.0
DEFAULT_MAX_RETRIES = 3

Operation = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class _QueuedRequest:
    operation: Operation
    future: asyncio.Future
    retries: int = 0


def _response_of(exc: BaseException) -> httpx.Response | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response
    return None


def is_rate_limit_error(exc: BaseException) -> bool:
    if isinstance(exc, RateLimitError):
        return True

    resp = _response_of(exc)
    if resp is not None and resp.status_code == 429:
        return True

    msg = str(exc).lower()
    if "429" in msg or "rate limit" in msg or "too many requests" in msg:
        return True

    if resp is not None:
        try:
            body = resp.text
        except httpx.ResponseNotRead:
            body = ""
        if "rate limit" in body.lower():
            return True
    return False


def retry_after_seconds(exc: BaseException) -> float | None:
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        return float(exc.retry_after)

    resp = _response_of(exc)
    if resp is None:
        return None
    raw = resp.headers.get("retry-after")
    if not raw:
        return None
    try:
        return float(int(raw))
    except ValueError:
        return None


class RequestQueue:
    """
    Process-wide single-flight queue for outbound listings calls.

    - At most `requests_per_second` operations start per second.
    - Only one operation runs at a time.
    - Rate-limit failures are retried up to `max_retries` times, re-entering at
      the FRONT of the queue after `base * 2**retries + jitter`, where base is
      the provider's Retry-After (seconds) or `retry_delay_s`.
    - Everything else rejects the caller immediately.

    `clock`, `sleep` and `rng` are injectable so tests can run on fake time.
    """

    def __init__(
        self,
        requests_per_second: float = 1.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
        max_jitter_s: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.requests_per_second = requests_per_second
        self.min_interval_s = 1.0 / requests_per_second
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.max_jitter_s = max_jitter_s

        self._clock = clock
        self._sleep = sleep
        self._rng = rng

        self._pending: deque[_QueuedRequest] = deque()
        self._processing = False
        self._last_request_at = float("-inf")
        self._background: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def enqueue(self, operation: Callable[[], Awaitable[T]]) -> T:
        loop = asyncio.get_running_loop()
        item = _QueuedRequest(operation=operation, future=loop.create_future())
        self._pending.append(item)
        self._kick()
        return await item.future

    def _kick(self) -> None:
        if self._processing:
            return
        self._processing = True
        self._spawn(self._process())

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def retry_delay(self, exc: BaseException, retries: int) -> float:
        base = retry_after_seconds(exc)
        if base is None:
            base = self.retry_delay_s
        return base * (2**retries) + self._rng() * self.max_jitter_s

    async def _process(self) -> None:
        try:
            while self._pending:
                wait = self.min_interval_s - (self._clock() - self._last_request_at)
                if wait > 0:
                    await self._sleep(wait)
                if not self._pending:
                    break

                item = self._pending.popleft()
                if item.future.done():
                    # caller went away (cancelled) while waiting
                    continue

                self._last_request_at = self._clock()
                log.debug("Executing request (retry attempt: %d)", item.retries)
                try:
                    result = await item.operation()
                except Exception as e:
                    self._on_failure(item, e)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
        finally:
            self._processing = False

    def _on_failure(self, item: _QueuedRequest, exc: Exception) -> None:
        rate_limited = is_rate_limit_error(exc)

        if rate_limited and item.retries < self.max_retries:
            delay = self.retry_delay(exc, item.retries)
            item.retries += 1
            log.warning(
                "Rate limit hit, retrying (%d/%d) after %.1fs",
                item.retries,
                self.max_retries,
                delay,
            )
            self._spawn(self._requeue_after(item, delay))
            return

        if rate_limited:
            log.error("Max retries (%d) exceeded for rate limit error. Giving up.", self.max_retries)
        else:
            log.error("Non-rate-limit error, not retrying: %r", exc)
        if not item.future.done():
            item.future.set_exception(exc)

    async def _requeue_after(self, item: _QueuedRequest, delay: float) -> None:
        await self._sleep(delay)
        self._pending.appendleft(item)
        self._kick()
