"""Shared pytest fixtures for github-lang-stats tests.

No test touches the network: HTTP goes through ``httpx.MockTransport`` and
time through :class:`FakeClock`.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from ghlangstats.engines.collector.github_client import GitHubClient
from ghlangstats.engines.collector.models import CommitDetail, FileChange, Repository
from ghlangstats.engines.collector.rate_budget import RateBudgetTracker

T0 = 1_700_000_000.0


class FakeClock:
    """Simulated wall clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, now: float = T0) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client(clock):
    """Build a GitHubClient whose requests are answered by *handler*."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> GitHubClient:
        tracker = kwargs.pop("tracker", None) or RateBudgetTracker(clock=clock, sleep=clock.sleep)
        return GitHubClient(
            "test-token",
            tracker=tracker,
            sleep=clock.sleep,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make


def graphql_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def repo(key: str, is_private: bool | None = None) -> Repository:
    owner, name = key.split("/")
    return Repository(owner=owner, name=name, is_private=is_private)


def detail(sha: str, *files: tuple[str, int, int], date: str = "2024-03-05T10:00:00Z") -> CommitDetail:
    return CommitDetail.model_validate(
        {
            "sha": sha,
            "date": date,
            "files": [
                FileChange(filename=name, additions=add, deletions=dele) for name, add, dele in files
            ],
        }
    )
