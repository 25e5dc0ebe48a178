"""Async GitHub REST + GraphQL client with rate-budget gating and retries."""

from __future__ import annotations

import asyncio
import os
from typing import Any

import httpx
import structlog

from ghlangstats.core.config import DEFAULT_RETRY_AFTER
from ghlangstats.engines.collector.rate_budget import Domain, RateBudgetTracker, Sleep
from ghlangstats.exceptions import (
    GitHubAPIError,
    GraphQLError,
    MalformedResponseError,
    RateLimitError,
)

log = structlog.get_logger("ghlangstats.github")

_BASE_URL = "https://api.github.com"
_USER_AGENT = "github-lang-stats/1.0"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds


class GitHubClient:
    """Thin async wrapper around the GitHub REST and GraphQL APIs.

    Every request first waits for headroom in its budget domain and records
    the response's rate-limit headers back into the shared tracker.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        tracker: RateBudgetTracker | None = None,
        timeout: float = 30.0,
        max_retry_after: int = 900,
        sleep: Sleep = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = _BASE_URL,
    ) -> None:
        resolved_token = token or os.environ.get("GITHUB_TOKEN")
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "User-Agent": _USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if resolved_token:
            headers["Authorization"] = f"Bearer {resolved_token}"
        self.tracker = tracker or RateBudgetTracker()
        self.max_retry_after = max_retry_after
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        domain: Domain = Domain.CORE,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request through *domain*'s budget.

        A secondary rate limit (429, or 403 carrying ``Retry-After`` or an
        exhausted counter) is waited out once and retried exactly once.
        Any other status is returned to the caller untouched.
        """
        resp = await self._send(method, path, domain=domain, params=params, json=json)
        if not self._is_rate_limited(resp):
            return resp

        wait = min(self._get_retry_after(resp), self.max_retry_after)
        log.warning(
            "github.secondary_rate_limit",
            path=path,
            status=resp.status_code,
            wait_seconds=wait,
        )
        await self._sleep(wait)

        resp = await self._send(method, path, domain=domain, params=params, json=json)
        if self._is_rate_limited(resp):
            raise RateLimitError(min(self._get_retry_after(resp), self.max_retry_after))
        return resp

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        domain: Domain = Domain.CORE,
    ) -> Any:
        """GET that must succeed; returns parsed JSON or raises GitHubAPIError."""
        resp = await self.request("GET", path, domain=domain, params=params)
        if not resp.is_success:
            raise GitHubAPIError(resp.status_code, path, self.error_message(resp))
        return self.parse_json(resp)

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object.

        Partial errors (e.g. a repository without a default branch) are
        logged and the data returned; errors without data raise.
        """
        resp = await self.request(
            "POST", "/graphql", json={"query": query, "variables": variables or {}}
        )
        if not resp.is_success:
            raise GitHubAPIError(resp.status_code, "/graphql", self.error_message(resp))

        body = self.parse_json(resp)
        if not isinstance(body, dict):
            raise MalformedResponseError("GraphQL response is not an object")
        errors = body.get("errors") or []
        data = body.get("data")
        if errors:
            messages = [str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors]
            if not data:
                raise GraphQLError(messages)
            log.debug("github.graphql_partial_errors", errors=messages)
        if not isinstance(data, dict):
            raise MalformedResponseError("GraphQL response has no data object")
        return data

    # ── internal ───────────────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        path: str,
        *,
        domain: Domain,
        params: dict[str, Any] | None,
        json: dict[str, Any] | None,
    ) -> httpx.Response:
        """Send with exponential backoff on timeouts and connection errors."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            await self.tracker.ensure_headroom(domain)
            try:
                resp = await self._client.request(method, path, params=params, json=json)
            except httpx.TransportError as exc:
                log.warning(
                    "github.transport_error",
                    path=path,
                    error=str(exc),
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = exc
                if attempt < _MAX_RETRIES - 1:
                    await self._sleep(_RETRY_BASE_DELAY * (2**attempt))
                continue

            self.tracker.record_headers(domain, resp.headers)
            return resp

        raise last_exc  # type: ignore[misc]

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a response is a (secondary) rate-limit rejection."""
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        if "Retry-After" in response.headers:
            return True
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        # Secondary limits may arrive with neither header, only the message.
        return "rate limit" in GitHubClient.error_message(response).lower()

    @staticmethod
    def _get_retry_after(response: httpx.Response) -> int:
        """Server-requested delay in seconds, 60 when none is given."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        return DEFAULT_RETRY_AFTER

    @staticmethod
    def parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"invalid JSON in {response.status_code} response"
            ) from exc

    @staticmethod
    def error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return (response.text or "")[:200]
        if isinstance(body, dict):
            return str(body.get("message") or "")
        return ""
