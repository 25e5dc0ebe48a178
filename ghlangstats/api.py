"""Programmatic entry points — collect language statistics without the CLI.

Usage::

    stats = await get_github_lang_stats(token, exclude_languages=["HTML"])
    print(stats.to_json())
"""

from __future__ import annotations

import asyncio
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import structlog

from ghlangstats.core.config import Settings, default_from_year
from ghlangstats.engines.aggregator import AggregatedStats
from ghlangstats.engines.collector.github_client import GitHubClient
from ghlangstats.engines.collector.models import Repository
from ghlangstats.engines.collector.rate_budget import RateBudgetTracker, Sleep
from ghlangstats.engines.collector.runner import LangStatsRunner, RunOptions, RunResult, Selector
from ghlangstats.engines.collector.source import WorkSource
from ghlangstats.engines.store import ProgressStore
from ghlangstats.exceptions import ConfigError
from ghlangstats.progress import ProgressTracker

log = structlog.get_logger("ghlangstats.api")

# Earliest year GitHub has contribution data for.
_FIRST_GITHUB_YEAR = 2008

_RUN_OPTION_NAMES = frozenset(f.name for f in fields(RunOptions))


def open_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep = asyncio.sleep,
) -> GitHubClient:
    """GitHub client with a fresh rate budget sized from *settings*."""
    tracker = RateBudgetTracker(
        core_reserve=settings.core_reserve,
        search_reserve=settings.search_reserve,
        sleep=sleep,
    )
    return GitHubClient(
        settings.token,
        tracker=tracker,
        timeout=settings.request_timeout,
        max_retry_after=settings.max_retry_after,
        sleep=sleep,
        transport=transport,
    )


def validate(settings: Settings, options: RunOptions) -> None:
    """Reject settings and options no run could succeed with."""
    if not settings.token:
        raise ConfigError("a GitHub token is required (pass --token or set GITHUB_TOKEN)")
    if settings.concurrency < 1:
        raise ConfigError(f"concurrency must be at least 1, got {settings.concurrency}")
    if options.from_year is not None:
        current_year = datetime.now(timezone.utc).year
        if not _FIRST_GITHUB_YEAR <= options.from_year <= current_year:
            raise ConfigError(
                f"from_year must be between {_FIRST_GITHUB_YEAR} and {current_year}, "
                f"got {options.from_year}"
            )


async def run_collection(
    settings: Settings,
    user: str | None = None,
    options: RunOptions | None = None,
    *,
    use_cache: bool = True,
    reset: bool = False,
    progress: ProgressTracker | None = None,
    selector: Selector | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep = asyncio.sleep,
) -> RunResult:
    """Resolve the user, open their store and run the full pipeline.

    When *user* is omitted the credential's owner is analysed and its node
    id doubles as the author identifier.
    """
    options = options or RunOptions()
    validate(settings, options)

    async with open_client(settings, transport=transport, sleep=sleep) as client:
        source = WorkSource(client, sleep=sleep)
        author_id: str | None = None
        if user is None:
            viewer = await source.resolve_viewer()
            user, author_id = viewer.login, viewer.node_id
            log.info("api.viewer_resolved", user=user)

        store = ProgressStore(settings.store_path(user), persist=use_cache)
        if reset:
            log.info("api.store_reset", path=str(store.path))
            store.reset()

        runner = LangStatsRunner(
            source,
            store,
            concurrency=settings.concurrency,
            flush_stride=settings.flush_stride,
            pr_pacing=settings.pr_pacing,
            progress=progress,
            selector=selector,
            sleep=sleep,
        )
        return await runner.run(user, options, author_id=author_id)


async def get_github_lang_stats(
    token: str | None,
    user: str | None = None,
    **options: Any,
) -> AggregatedStats:
    """Collect and aggregate lines changed per language for *user*.

    Keyword options: every ``RunOptions`` field (``from_year``,
    ``exclude_languages``, ``repos``, ``include_commit_dates``,
    ``include_pr_counts``, ``stats_only``) plus ``concurrency``,
    ``cache_dir``, ``use_cache``, ``reset`` and ``progress``.
    """
    cache_dir = options.pop("cache_dir", None)
    settings = Settings.from_env().with_overrides(
        token=token,
        concurrency=options.pop("concurrency", None),
        cache_dir=Path(cache_dir) if cache_dir is not None else None,
    )
    use_cache = options.pop("use_cache", True)
    reset = options.pop("reset", False)
    progress = options.pop("progress", None)

    unknown = set(options) - _RUN_OPTION_NAMES
    if unknown:
        raise ConfigError(f"unknown option(s): {', '.join(sorted(unknown))}")

    result = await run_collection(
        settings,
        user,
        RunOptions(**options),
        use_cache=use_cache,
        reset=reset,
        progress=progress,
    )
    return result.stats


async def list_repositories(
    token: str | None,
    user: str | None = None,
    from_year: int | None = None,
    *,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Repository]:
    """Discover the repositories *user* owns or contributed to, without collecting stats."""
    settings = (settings or Settings.from_env()).with_overrides(token=token)
    validate(settings, RunOptions(from_year=from_year))

    async with open_client(settings, transport=transport) as client:
        source = WorkSource(client)
        if user is None:
            user = (await source.resolve_viewer()).login
        result = await source.discover_repositories(user, from_year or default_from_year())
    if result.failed_years:
        log.warning("api.discovery_incomplete", user=user, failed_years=result.failed_years)
    return sorted(result.repos, key=lambda r: r.key.lower())
