"""Per-domain request budgets fed by live GitHub rate-limit headers."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum

import structlog

from ghlangstats.core.config import (
    MIN_WAIT_SECONDS,
    SAFETY_MARGIN_SECONDS,
    SEARCH_CEILING,
    SEARCH_WINDOW_SECONDS,
)

log = structlog.get_logger("ghlangstats.ratelimit")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class Domain(str, Enum):
    """Independently limited API budgets."""

    CORE = "core"  # GraphQL and REST
    SEARCH = "search"


@dataclass
class RateBudget:
    """Latest observed state of one domain's budget."""

    limit: int
    remaining: int
    reset: int
    reserve: int
    dynamic_limit: bool = True

    @property
    def available_for_tool(self) -> int:
        return max(self.remaining - self.reserve, 0)

    @property
    def exhausted(self) -> bool:
        return self.remaining <= self.reserve


@dataclass(frozen=True)
class RateLimitInfo:
    """Read-only snapshot handed to progress renderers."""

    domain: Domain
    limit: int
    remaining: int
    reserved: int
    available_for_tool: int
    reset: int

    def estimated_wait_minutes(self, pending: int) -> int:
        """Minutes spent waiting for hourly windows before *pending* requests can go out."""
        if pending <= self.available_for_tool:
            return 0
        per_window = max(self.limit - self.reserved, 1)
        return -(-(pending - self.available_for_tool) // per_window) * 60


class RateBudgetTracker:
    """Tracks the core and search budgets and gates callers on them.

    ``record`` has no suspension point, so updates from concurrently issued
    requests are applied one at a time on the event loop (last write wins).
    """

    def __init__(
        self,
        *,
        core_reserve: int = 100,
        search_reserve: int = 2,
        safety_margin: int = SAFETY_MARGIN_SECONDS,
        min_wait: int = MIN_WAIT_SECONDS,
        clock: Clock = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self.safety_margin = safety_margin
        self.min_wait = min_wait
        self._budgets: dict[Domain, RateBudget] = {
            Domain.CORE: RateBudget(limit=5000, remaining=5000, reset=0, reserve=core_reserve),
            Domain.SEARCH: RateBudget(
                limit=SEARCH_CEILING,
                remaining=SEARCH_CEILING,
                reset=0,
                reserve=search_reserve,
                dynamic_limit=False,
            ),
        }

    def budget(self, domain: Domain) -> RateBudget:
        return self._budgets[domain]

    def record(
        self,
        domain: Domain,
        *,
        limit: int | None = None,
        remaining: int | None = None,
        reset: int | None = None,
    ) -> None:
        """Overwrite the tracked state with the latest observed values."""
        budget = self._budgets[domain]
        if limit is not None and budget.dynamic_limit:
            budget.limit = limit
        if remaining is not None:
            budget.remaining = remaining
        if reset is not None:
            budget.reset = reset

    def record_headers(self, domain: Domain, headers: Mapping[str, str]) -> None:
        """Feed ``X-RateLimit-*`` headers from a response into *domain*."""
        self.record(
            domain,
            limit=_parse_header_int(headers.get("X-RateLimit-Limit")),
            remaining=_parse_header_int(headers.get("X-RateLimit-Remaining")),
            reset=_parse_header_int(headers.get("X-RateLimit-Reset")),
        )

    def wait_seconds(self, domain: Domain) -> float:
        """Seconds a caller must wait before using *domain* (0 when there is headroom)."""
        budget = self._budgets[domain]
        if not budget.exhausted:
            return 0.0
        return max(budget.reset - self._clock() + self.safety_margin, self.min_wait)

    async def ensure_headroom(self, domain: Domain) -> None:
        """Suspend until *domain* has requests left above its reserve."""
        wait = self.wait_seconds(domain)
        if wait <= 0:
            return
        budget = self._budgets[domain]
        log.warning(
            "github.rate_limit_wait",
            domain=domain.value,
            remaining=budget.remaining,
            reserve=budget.reserve,
            wait_seconds=round(wait, 1),
        )
        reset_before = budget.reset
        await self._sleep(wait)
        # No response refreshed the window while we slept: assume it rolled over.
        if budget.reset == reset_before and budget.exhausted:
            budget.remaining = budget.limit
            if domain is Domain.SEARCH:
                budget.reset = int(self._clock()) + SEARCH_WINDOW_SECONDS

    def info(self, domain: Domain = Domain.CORE) -> RateLimitInfo:
        budget = self._budgets[domain]
        return RateLimitInfo(
            domain=domain,
            limit=budget.limit,
            remaining=budget.remaining,
            reserved=budget.reserve,
            available_for_tool=budget.available_for_tool,
            reset=budget.reset,
        )


def _parse_header_int(value: str | None) -> int | None:
    """Safely parse an integer header value."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None
