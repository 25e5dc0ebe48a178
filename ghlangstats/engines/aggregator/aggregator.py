"""Aggregator — pure reduction of fetched commits into language statistics."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone

from ghlangstats.engines.aggregator.models import AggregatedStats, RepoStats, StatsMeta
from ghlangstats.engines.collector.models import CommitDetail, Repository
from ghlangstats.languages import detect_language, is_excluded_language


def aggregate(
    user: str,
    commits_by_repo: Mapping[str, list[str]],
    commit_details: Mapping[str, CommitDetail | None],
    exclude_languages: Iterable[str] = (),
    include_commit_dates: bool = True,
    pr_count_by_repo: Mapping[str, int] | None = None,
    repositories: Iterable[Repository] = (),
    include_pr_counts: bool = True,
    *,
    generated_at: datetime | None = None,
    detector: Callable[[str], str | None] = detect_language,
) -> AggregatedStats:
    """Sum ``additions + deletions`` per language for every realized commit.

    Tombstoned and still-unfetched commits contribute nothing. A repository
    shows up in ``by_repo`` only when at least one line was counted for it.
    """
    excluded = set(exclude_languages)
    pr_counts = pr_count_by_repo or {}
    visibility = {r.key: r.is_private for r in repositories}

    totals: dict[str, int] = {}
    by_repo: dict[str, RepoStats] = {}
    processed = 0

    for key, shas in commits_by_repo.items():
        repo_langs: dict[str, int] = {}
        commit_dates: list[str] = []

        for sha in shas:
            detail = commit_details.get(sha)
            if detail is None:
                continue
            processed += 1

            if include_commit_dates and detail.date is not None:
                commit_dates.append(_day(detail.date))

            for change in detail.files:
                lang = detector(change.filename)
                if not lang or is_excluded_language(lang) or lang in excluded:
                    continue
                lines = change.lines_changed
                repo_langs[lang] = repo_langs.get(lang, 0) + lines
                totals[lang] = totals.get(lang, 0) + lines

        if not repo_langs:
            continue
        by_repo[key] = RepoStats(
            languages=_sorted_desc(repo_langs),
            commit_dates=commit_dates if include_commit_dates and commit_dates else None,
            pr_count=pr_counts.get(key) if include_pr_counts else None,
            is_private=visibility.get(key),
        )

    generated_at = generated_at or datetime.now(timezone.utc)
    return AggregatedStats(
        totals=_sorted_desc(totals),
        by_repo={key: by_repo[key] for key in sorted(by_repo)},
        meta=StatsMeta(
            user=user,
            generated_at=generated_at.isoformat().replace("+00:00", "Z"),
            total_commits_processed=processed,
            total_repos=len(by_repo),
        ),
    )


def _sorted_desc(counts: dict[str, int]) -> dict[str, int]:
    # sorted() is stable, so ties keep insertion order
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))


def _day(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()
