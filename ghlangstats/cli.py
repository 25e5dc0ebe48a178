"""CLI entry point: gls.

Usage:
    gls                          # stats for the token's owner, JSON on stdout
    gls -u octocat -o out.json   # stats for another user, written to a file
    gls --select-repos           # pick repositories interactively
    gls repos                    # list discovered repositories only
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import httpx

from ghlangstats.api import list_repositories, run_collection
from ghlangstats.core.config import Settings
from ghlangstats.core.github import parse_repo_list
from ghlangstats.core.logging import setup_logging
from ghlangstats.engines.collector.models import Repository
from ghlangstats.engines.collector.runner import RunOptions
from ghlangstats.exceptions import LangStatsError
from ghlangstats.output import (
    ProgressRenderer,
    format_run_summary,
    format_top_languages,
    write_stats,
)
from ghlangstats.progress import ProgressTracker


def parse_selection(raw: str, count: int) -> list[int]:
    """Turn ``all`` or ``1,3,5-8`` into 1-based indices (first-seen order, no duplicates)."""
    text = raw.strip().lower()
    if text == "all":
        return list(range(1, count + 1))

    picked: list[int] = []
    for part in (p.strip() for p in text.split(",")):
        if not part:
            continue
        try:
            if "-" in part:
                lo, hi = (int(x) for x in part.split("-", 1))
                if lo > hi:
                    raise click.BadParameter(f"range {part!r} is reversed")
                indices = range(lo, hi + 1)
            else:
                indices = range(int(part), int(part) + 1)
        except ValueError:
            raise click.BadParameter(f"{part!r} is not a number or range") from None
        for idx in indices:
            if not 1 <= idx <= count:
                raise click.BadParameter(f"{idx} is outside 1-{count}")
            if idx not in picked:
                picked.append(idx)
    return picked


def _visibility(repo: Repository) -> str:
    if repo.is_private is None:
        return "unknown"
    return "private" if repo.is_private else "public"


def prompt_selection(choices: list[tuple[Repository, int]]) -> list[str]:
    """Interactive picker; choices arrive sorted by cached commit count."""
    click.echo(f"\n{len(choices)} repositories:", err=True)
    for idx, (repo, commits) in enumerate(choices, 1):
        click.echo(
            f"  {idx:>3}. {repo.key:<50} {commits:>6} commits  {_visibility(repo)}",
            err=True,
        )
    indices = click.prompt(
        "Select repositories (e.g. 1,3,5-8 or 'all')",
        default="",
        show_default=False,
        value_proc=lambda raw: parse_selection(raw, len(choices)),
        err=True,
    )
    if not indices:
        click.echo("No repositories selected, nothing to do.", err=True)
        raise click.exceptions.Exit(0)
    return [choices[idx - 1][0].key for idx in indices]


def _split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


@click.group(invoke_without_command=True)
@click.option("-u", "--user", default=None, help="GitHub login (default: the token's owner)")
@click.option("-t", "--token", default=None, envvar="GITHUB_TOKEN", help="GitHub token (env: GITHUB_TOKEN)")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write JSON here instead of stdout")
@click.option("--cache", "cache_dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Progress store directory")
@click.option("--no-cache", is_flag=True, help="Keep progress in memory only")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Parallel commit detail requests")
@click.option("--from-year", type=int, default=None, help="First year to scan (default: ten years back)")
@click.option("--exclude-langs", default=None, help="Comma-separated languages to drop from the output")
@click.option("--repos", "repo_list", default=None, help="Comma-separated owner/name allow-list")
@click.option("--select-repos", is_flag=True, help="Pick repositories interactively")
@click.option("--stats-only", is_flag=True, help="Aggregate cached data without calling GitHub for new data")
@click.option("--reset", is_flag=True, help="Discard the progress store before running")
@click.option("--no-commit-dates", is_flag=True, help="Omit per-repository commit dates")
@click.option("--no-pr-counts", is_flag=True, help="Skip the pull request count phase")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(
    ctx: click.Context,
    user: str | None,
    token: str | None,
    output: Path | None,
    cache_dir: Path | None,
    no_cache: bool,
    concurrency: int | None,
    from_year: int | None,
    exclude_langs: str | None,
    repo_list: str | None,
    select_repos: bool,
    stats_only: bool,
    reset: bool,
    no_commit_dates: bool,
    no_pr_counts: bool,
    verbose: bool,
) -> None:
    """github-lang-stats: lines changed per language across your GitHub commits."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is not None:
        return

    try:
        repos = parse_repo_list(repo_list) if repo_list else None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--repos") from None

    try:
        settings = Settings.from_env().with_overrides(
            token=token, cache_dir=cache_dir, concurrency=concurrency
        )
    except LangStatsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    options = RunOptions(
        from_year=from_year,
        exclude_languages=_split_csv(exclude_langs),
        repos=repos,
        include_commit_dates=not no_commit_dates,
        include_pr_counts=not no_pr_counts,
        stats_only=stats_only,
    )

    progress = ProgressTracker()
    renderer = ProgressRenderer()
    progress.sinks.append(renderer)
    progress.callbacks.append(renderer.on_phase)

    try:
        result = asyncio.run(
            run_collection(
                settings,
                user,
                options,
                use_cache=not no_cache,
                reset=reset,
                progress=progress,
                selector=prompt_selection if select_repos else None,
            )
        )
    except (LangStatsError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    write_stats(result.stats, output)
    if output is not None:
        click.echo(f"Results written to {output}", err=True)

    summary = progress.get_summary()
    click.echo(f"\nTop languages ({result.stats.meta.user}):", err=True)
    for line in format_top_languages(result.stats):
        click.echo(line, err=True)
    click.echo(f"\nRun summary (total: {summary['total_duration']}s):", err=True)
    for line in format_run_summary(result.summary):
        click.echo(line, err=True)


@main.command("repos")
@click.option("-u", "--user", default=None, help="GitHub login (default: the token's owner)")
@click.option("-t", "--token", default=None, envvar="GITHUB_TOKEN", help="GitHub token (env: GITHUB_TOKEN)")
@click.option("--from-year", type=int, default=None, help="First year to scan (default: ten years back)")
def repos_cmd(user: str | None, token: str | None, from_year: int | None) -> None:
    """List the repositories a user owns or contributed to."""
    try:
        repos = asyncio.run(list_repositories(token, user, from_year))
    except (LangStatsError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not repos:
        click.echo("No repositories found.")
        return
    for repo in repos:
        click.echo(f"  {repo.key:<50} {_visibility(repo)}")
    click.echo(f"\n{len(repos)} repositories", err=True)


if __name__ == "__main__":
    main()
