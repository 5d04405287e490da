"""Shared request budget for the Webflow Data API.

The manager tracks the budget the server reports in its response headers and
decides what happens to a call once that budget is gone:

``throw``
    fail immediately with :class:`RateLimitedError`.
``retry``
    sleep ``Retry-After`` (or ``base_delay * 2**attempt``) and call again, up
    to ``max_retries`` times.
``queue``
    park the call; a single drain task replays parked calls one at a time,
    waiting out the throttle between them.

The state is only ever refreshed from server headers. Nothing is decremented
locally, and calls served by the Designer host never reach this class.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sitepatch.config.engine import RateLimitConfig
from sitepatch.domain.errors import RateLimitedError
from sitepatch.domain.model import RateLimitState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    Call = Callable[[], Awaitable[object]]
    Sleep = Callable[[float], Awaitable[None]]
    Clock = Callable[[], float]

log = getLogger(__name__)

DEFAULT_LIMIT: Final[int] = 100
DEFAULT_WINDOW_SECONDS: Final[float] = 3600.0

HEADER_REMAINING: Final[str] = "x-ratelimit-remaining"
HEADER_LIMIT: Final[str] = "x-ratelimit-limit"
HEADER_RESET: Final[str] = "x-ratelimit-reset"
HEADER_RETRY_AFTER: Final[str] = "retry-after"


@dataclass(slots=True)
class _QueuedCall:
    call: Call
    future: asyncio.Future[object]
    attempts: int = 0


@dataclass(slots=True)
class _Queue:
    items: deque[_QueuedCall] = field(default_factory=deque)

    def cancel_all(self) -> None:
        while self.items:
            item = self.items.popleft()
            if not item.future.done():
                item.future.cancel()


class RateLimitManager:
    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.time,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._sleep = sleep
        self._clock = clock
        self._state = self._initial_state()
        self._queue = _Queue()
        self._drain_task: asyncio.Task[None] | None = None
        self.is_processing_queue = False

    @property
    def state(self) -> RateLimitState:
        return self._state

    @property
    def queued(self) -> int:
        return len(self._queue.items)

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """Refresh the budget from a Webflow response.

        ``Retry-After`` only applies to the response that carried it, so it is
        cleared when absent; the other fields keep their last reported value.
        """

        state = self._state
        remaining = _parse_number(headers.get(HEADER_REMAINING))
        limit = _parse_number(headers.get(HEADER_LIMIT))
        reset = _parse_number(headers.get(HEADER_RESET))
        retry_after = _parse_number(headers.get(HEADER_RETRY_AFTER))

        self._state = replace(
            state,
            remaining=int(remaining) if remaining is not None else state.remaining,
            limit=int(limit) if limit is not None else state.limit,
            reset_time=reset if reset is not None else state.reset_time,
            retry_after=retry_after,
        )

    def should_rate_limit(self) -> bool:
        """Return ``True`` while the budget is exhausted and the window has not reset."""

        state = self._state
        return state.remaining <= 0 and self._clock() < state.reset_time

    def retry_delay(self, attempt: int = 0) -> float:
        if self._state.retry_after is not None:
            return self._state.retry_after
        return self.config.base_delay_seconds * (2**attempt)

    async def execute(self, call: Call) -> object:
        """Run ``call`` under the configured strategy."""

        if self.should_rate_limit():
            log.info(f"Request budget exhausted; applying {self.config.strategy} strategy")
            return await self._handle(call, None)
        try:
            return await call()
        except RateLimitedError as exc:
            log.info(f"Rate limited by Webflow ({exc.message}); applying {self.config.strategy}")
            return await self._handle(call, exc)

    def reset(self) -> None:
        self._state = self._initial_state()
        self._queue.cancel_all()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        self._drain_task = None
        self.is_processing_queue = False

    async def _handle(self, call: Call, error: RateLimitedError | None) -> object:
        strategy = self.config.strategy
        if strategy == "throw":
            raise error or self._exhausted("Rate limit exceeded")
        if strategy == "retry":
            return await self._retry(call, error)
        return await self._enqueue(call, attempts=0 if error is None else 1)

    async def _retry(self, call: Call, error: RateLimitedError | None) -> object:
        for attempt in range(self.config.max_retries):
            delay = self.retry_delay(attempt)
            log.info(f"Retrying rate-limited call in {delay:.2f}s (attempt {attempt + 1})")
            await self._sleep(delay)
            try:
                return await call()
            except RateLimitedError as exc:
                error = exc
        raise self._exhausted("Rate limit exceeded - max retries reached") from error

    async def _enqueue(self, call: Call, *, attempts: int) -> object:
        future: asyncio.Future[object] = asyncio.get_running_loop().create_future()
        self._queue.items.append(_QueuedCall(call=call, future=future, attempts=attempts))
        log.debug(f"Queued rate-limited call ({self.queued} waiting)")
        if not self.is_processing_queue:
            self.is_processing_queue = True
            self._drain_task = asyncio.create_task(self._drain())
        return await future

    async def _drain(self) -> None:
        items = self._queue.items
        current: _QueuedCall | None = None
        try:
            while items:
                head = items[0]
                if head.attempts or self.should_rate_limit():
                    await self._sleep(self.retry_delay(head.attempts))
                current = items.popleft()
                if current.future.done():
                    continue
                try:
                    result = await current.call()
                except RateLimitedError as exc:
                    current.attempts += 1
                    if current.attempts > self.config.max_retries:
                        current.future.set_exception(
                            self._exhausted("Rate limit exceeded - max retries reached", exc)
                        )
                    else:
                        items.appendleft(current)
                except Exception as exc:  # noqa: BLE001
                    current.future.set_exception(exc)
                else:
                    current.future.set_result(result)
                current = None
        except asyncio.CancelledError:
            if current is not None and not current.future.done():
                current.future.cancel()
            self._queue.cancel_all()
            raise
        finally:
            self.is_processing_queue = False

    def _exhausted(self, message: str, cause: BaseException | None = None) -> RateLimitedError:
        error = RateLimitedError(message, state=self._state)
        if cause is not None:
            error.__cause__ = cause
        return error

    def _initial_state(self) -> RateLimitState:
        return RateLimitState(
            remaining=DEFAULT_LIMIT,
            limit=DEFAULT_LIMIT,
            reset_time=self._clock() + DEFAULT_WINDOW_SECONDS,
        )


def _parse_number(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw.strip())
    except ValueError:
        log.debug(f"Ignoring non-numeric rate limit header value {raw!r}")
        return None
