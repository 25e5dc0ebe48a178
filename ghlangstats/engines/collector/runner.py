"""LangStatsRunner — drives discovery, enumeration, detail and PR phases over the store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import structlog

from ghlangstats.core.config import default_from_year
from ghlangstats.engines.aggregator import AggregatedStats, aggregate
from ghlangstats.engines.collector.models import CommitDetail, CommitRef, Repository
from ghlangstats.engines.collector.rate_budget import Domain, Sleep
from ghlangstats.engines.collector.source import WorkSource
from ghlangstats.engines.store import ProgressStore
from ghlangstats.exceptions import LangStatsError
from ghlangstats.progress import ProgressTracker

log = structlog.get_logger("ghlangstats.runner")

_DEFAULT_CONCURRENCY = 5
_DEFAULT_FLUSH_STRIDE = 50
_DEFAULT_PR_PACING = 2.0  # seconds; search API allows 30 req/min

# Receives (repository, cached commit count) pairs, returns the chosen "owner/name" keys.
Selector = Callable[[list[tuple[Repository, int]]], list[str]]


@dataclass
class RunOptions:
    """What to collect and how to aggregate it."""

    from_year: int | None = None
    exclude_languages: list[str] = field(default_factory=list)
    repos: list[str] | None = None
    include_commit_dates: bool = True
    include_pr_counts: bool = True
    stats_only: bool = False


@dataclass
class RunSummary:
    """Counters reported after a run; isolated failures land here, not in exceptions."""

    repos_known: int = 0
    repos_selected: int = 0
    discovery_failed_years: list[int] = field(default_factory=list)
    repos_enumerated: int = 0
    truncated_repos: list[str] = field(default_factory=list)
    details_fetched: int = 0
    details_tombstoned: int = 0
    details_failed: int = 0
    pr_counts_fetched: int = 0
    pr_counts_failed: int = 0


@dataclass
class RunResult:
    stats: AggregatedStats
    summary: RunSummary


class LangStatsRunner:
    """Orchestration layer: remote work source → progress store → aggregator.

    The store is owned exclusively by the runner; every phase asks it what is
    still missing, fetches only that, and writes the outcome back.
    """

    def __init__(
        self,
        source: WorkSource,
        store: ProgressStore,
        *,
        concurrency: int = _DEFAULT_CONCURRENCY,
        flush_stride: int = _DEFAULT_FLUSH_STRIDE,
        pr_pacing: float = _DEFAULT_PR_PACING,
        progress: ProgressTracker | None = None,
        selector: Selector | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._source = source
        self._store = store
        self._concurrency = concurrency
        self._flush_stride = max(flush_stride, 1)
        self._pr_pacing = pr_pacing
        self._selector = selector
        self._sleep = sleep
        self.progress = progress or ProgressTracker()

    async def run(
        self,
        user: str,
        options: RunOptions | None = None,
        *,
        author_id: str | None = None,
    ) -> RunResult:
        """Run every phase for *user* and aggregate whatever the store holds.

        The store is flushed on the way out, also when a phase raises.
        """
        options = options or RunOptions()
        from_year = options.from_year or default_from_year()
        summary = RunSummary()

        try:
            if options.stats_only:
                for phase in ("discover", "enumerate", "details", "pr_counts"):
                    self.progress.skip_phase(phase, "stats-only")
                repos = self.select(options)
            else:
                await self.discover(user, from_year, summary)
                repos = self.select(options)
                await self.enumerate(repos, user, from_year, summary, author_id=author_id)
                await self.fetch_details(repos, summary)
                if options.include_pr_counts:
                    await self.collect_pr_counts(repos, user, summary)
                else:
                    self.progress.skip_phase("pr_counts", "disabled")
        finally:
            if self._store.dirty:
                self._store.save()

        summary.repos_known = len(self._store.repos)
        summary.repos_selected = len(repos)
        stats = self.aggregate(user, repos, options)
        return RunResult(stats=stats, summary=summary)

    # ── phase 1 ────────────────────────────────────────────────────────────

    async def discover(self, user: str, from_year: int, summary: RunSummary) -> None:
        """Populate the repository set unless an earlier run already did."""
        if self._store.repos:
            self.progress.skip_phase("discover", f"{len(self._store.repos)} repos cached")
            return

        self.progress.start_phase("discover")
        try:
            result = await self._source.discover_repositories(
                user, from_year, on_year=self.progress.year_scanned
            )
        except (LangStatsError, httpx.HTTPError) as exc:
            self.progress.fail_phase("discover", str(exc))
            raise
        self._store.add_repos(result.repos)
        self._store.save()
        summary.discovery_failed_years = list(result.failed_years)
        self.progress.complete_phase(
            "discover",
            detail=f"{len(result.repos)} repos, {len(result.failed_years)} years failed",
        )

    def select(self, options: RunOptions) -> list[Repository]:
        """Restrict the known repositories to the allow-list and/or the selector's choice."""
        repos = self._store.repos
        if options.repos is not None:
            wanted = set(options.repos)
            missing = wanted - {r.key for r in repos}
            if missing:
                log.warning("runner.unknown_repos", repos=sorted(missing))
            repos = [r for r in repos if r.key in wanted]

        if self._selector is not None and repos:
            choices = sorted(
                ((r, len(self._store.get_commits(r))) for r in repos),
                key=lambda choice: choice[1],
                reverse=True,
            )
            chosen = set(self._selector(choices))
            repos = [r for r in repos if r.key in chosen]
        return repos

    # ── phase 2 ────────────────────────────────────────────────────────────

    async def enumerate(
        self,
        repos: list[Repository],
        user: str,
        from_year: int,
        summary: RunSummary,
        *,
        author_id: str | None = None,
    ) -> None:
        """Collect authored SHAs repository by repository (strictly sequential)."""
        incomplete = [r for r in repos if not self._store.is_repo_complete(r)]
        if not incomplete:
            self.progress.skip_phase("enumerate", "all commit SHAs cached")
            return

        self.progress.start_phase("enumerate")
        try:
            author_id = author_id or await self._source.get_user_node_id(user)
        except (LangStatsError, httpx.HTTPError) as exc:
            self.progress.fail_phase("enumerate", str(exc))
            raise

        for idx, repo in enumerate(incomplete, 1):
            result = await self._source.enumerate_authored_commits(repo, author_id, from_year)
            added = self._store.add_commits(repo, result.shas)
            if result.truncated:
                summary.truncated_repos.append(repo.key)
            else:
                self._store.mark_repo_complete(repo)
            self._store.save()
            summary.repos_enumerated += 1

            total = len(self._store.get_commits(repo))
            log.info(
                "runner.repo_enumerated",
                repo=repo.key,
                position=f"{idx}/{len(incomplete)}",
                commits=total,
                new=added,
                truncated=result.truncated,
            )
            self.progress.repo_enumerated(repo.key, total)

        self.progress.complete_phase(
            "enumerate",
            detail=f"{summary.repos_enumerated} repos, {len(summary.truncated_repos)} truncated",
        )

    # ── phase 3 ────────────────────────────────────────────────────────────

    def pending_work(self, repos: list[Repository]) -> list[CommitRef]:
        """Every (repo, sha) whose detail has not been fetched yet, each sha once."""
        work: list[CommitRef] = []
        seen: set[str] = set()
        for repo in repos:
            for sha in self._store.get_commits(repo):
                if sha in seen or self._store.has_commit_detail(sha):
                    continue
                seen.add(sha)
                work.append(CommitRef(repo=repo, sha=sha))
        return work

    async def fetch_details(self, repos: list[Repository], summary: RunSummary) -> None:
        """Fetch missing commit details in fixed-size concurrent batches.

        Batch N+1 starts only after batch N settled. A failing unit is
        recorded as a tombstone and never cancels its siblings.
        """
        work = self.pending_work(repos)
        if not work:
            self.progress.skip_phase("details", "all commit details cached")
            return

        info = self._source.rate_limit_info(Domain.CORE)
        wait_minutes = info.estimated_wait_minutes(len(work))
        log.info(
            "runner.details_start",
            pending=len(work),
            cached=self._store.total_commit_shas(repos) - len(work),
            concurrency=self._concurrency,
            rate_limit=info.limit,
            reserved=info.reserved,
            available=info.available_for_tool,
            est_wait_minutes=wait_minutes,
        )
        self.progress.start_phase("details")
        self.progress.details_fetched(
            0,
            len(work),
            detail=(
                f"{info.available_for_tool} requests available now, "
                f"~{wait_minutes} min of rate-limit waits expected"
            ),
        )

        done = 0
        since_flush = 0
        for start in range(0, len(work), self._concurrency):
            batch = work[start : start + self._concurrency]
            outcomes = await asyncio.gather(
                *(self._source.fetch_commit_detail(ref.repo, ref.sha) for ref in batch),
                return_exceptions=True,
            )
            for ref, outcome in zip(batch, outcomes, strict=True):
                self._record_detail(ref, outcome, summary)
                done += 1
                since_flush += 1
                if since_flush >= self._flush_stride:
                    self._store.save()
                    since_flush = 0
            if since_flush:
                self._store.save()
                since_flush = 0
            log.debug("runner.batch_saved", done=done, total=len(work))
            self.progress.details_fetched(done, len(work))

        self.progress.complete_phase(
            "details",
            detail=(
                f"{summary.details_fetched} fetched, {summary.details_tombstoned} unavailable, "
                f"{summary.details_failed} errors"
            ),
        )

    def _record_detail(
        self,
        ref: CommitRef,
        outcome: CommitDetail | None | BaseException,
        summary: RunSummary,
    ) -> None:
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            log.warning(
                "runner.detail_failed",
                repo=ref.repo.key,
                sha=ref.sha,
                error=f"{type(outcome).__name__}: {outcome}",
            )
            summary.details_failed += 1
            self._store.set_commit_detail(ref.sha, None)
            return
        if outcome is None:
            summary.details_tombstoned += 1
        else:
            summary.details_fetched += 1
        self._store.set_commit_detail(ref.sha, outcome)

    # ── phase 4 ────────────────────────────────────────────────────────────

    async def collect_pr_counts(self, repos: list[Repository], user: str, summary: RunSummary) -> None:
        """Best-effort PR counts, one repository at a time with fixed pacing.

        A repository whose lookup fails is still marked complete.
        """
        incomplete = [r for r in repos if not self._store.is_repo_pr_complete(r)]
        if not incomplete:
            self.progress.skip_phase("pr_counts", "all PR counts cached")
            return

        self.progress.start_phase("pr_counts")
        for idx, repo in enumerate(incomplete, 1):
            try:
                count = await self._source.fetch_pr_count(repo, user)
            except (LangStatsError, httpx.HTTPError) as exc:
                log.warning("runner.pr_count_failed", repo=repo.key, error=str(exc))
                summary.pr_counts_failed += 1
            else:
                self._store.set_pr_count(repo, count)
                summary.pr_counts_fetched += 1
            self._store.mark_repo_pr_complete(repo)
            self._store.save()
            self.progress.pr_counts_fetched(idx, len(incomplete))
            if idx < len(incomplete):
                await self._sleep(self._pr_pacing)

        self.progress.complete_phase(
            "pr_counts",
            detail=f"{summary.pr_counts_fetched} fetched, {summary.pr_counts_failed} errors",
        )

    # ── phase 5 ────────────────────────────────────────────────────────────

    def aggregate(self, user: str, repos: list[Repository], options: RunOptions) -> AggregatedStats:
        """Reduce the store's current contents; runs even when nothing was fetched."""
        self.progress.aggregate_started()
        return aggregate(
            user,
            self._store.commits_by_repo(repos),
            self._store.commit_details,
            options.exclude_languages,
            options.include_commit_dates,
            self._store.pr_count_by_repo,
            repos,
            options.include_pr_counts,
        )
