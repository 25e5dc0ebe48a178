"""Output sinks — JSON result, terminal summaries and progress rendering."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import IO

import click

from ghlangstats.engines.aggregator import AggregatedStats
from ghlangstats.engines.collector.runner import RunSummary
from ghlangstats.progress import PhaseProgress, ProgressEvent

TOP_LANGUAGES = 10
_BAR_WIDTH = 30


def write_stats(stats: AggregatedStats, output: Path | str | None = None) -> None:
    """Write *stats* as camelCase JSON to *output*, or to stdout when it is None."""
    payload = stats.to_json()
    if output is None:
        click.echo(payload)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload + "\n", encoding="utf-8")


def format_top_languages(stats: AggregatedStats, limit: int = TOP_LANGUAGES) -> list[str]:
    """Bar chart lines for the *limit* languages with the most lines changed."""
    top = list(stats.totals.items())[:limit]
    if not top:
        return ["  (no language data)"]
    grand_total = sum(stats.totals.values()) or 1
    longest = top[0][1] or 1
    name_width = max(len(name) for name, _ in top)

    lines = []
    for name, lines_changed in top:
        bar = "█" * max(round(lines_changed / longest * _BAR_WIDTH), 1)
        share = lines_changed / grand_total * 100
        lines.append(
            f"  {name:<{name_width}}  {bar:<{_BAR_WIDTH}}  {share:5.1f}%  {lines_changed:,}"
        )
    return lines


def format_run_summary(summary: RunSummary) -> list[str]:
    lines = [
        f"  Repositories:     {summary.repos_selected} analysed of {summary.repos_known} known",
        f"  Commit details:   {summary.details_fetched} fetched, "
        f"{summary.details_tombstoned} unavailable, {summary.details_failed} failed",
    ]
    if summary.truncated_repos:
        lines.append(
            f"  Truncated:        {len(summary.truncated_repos)} repos "
            f"({', '.join(summary.truncated_repos)}), retried next run"
        )
    if summary.discovery_failed_years:
        years = ", ".join(str(y) for y in summary.discovery_failed_years)
        lines.append(f"  Discovery:        failed for {years}")
    if summary.pr_counts_fetched or summary.pr_counts_failed:
        lines.append(
            f"  PR counts:        {summary.pr_counts_fetched} fetched, "
            f"{summary.pr_counts_failed} failed"
        )
    return lines


def format_phase(p: PhaseProgress) -> str:
    icon = {
        "completed": "+",
        "failed": "!",
        "skipped": "-",
        "running": "~",
        "pending": ".",
    }.get(p.status, "?")
    duration = f" ({p.duration}s)" if p.duration else ""
    detail = f" - {p.detail or p.error or ''}" if (p.detail or p.error) else ""
    return f"  [{icon}] {p.phase}{duration}{detail}"


class ProgressRenderer:
    """Progress-event sink that draws one status line per event on stderr.

    Counter events overwrite the previous line when the stream is a terminal.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._inline = self._stream.isatty()
        self._open_line = False

    def __call__(self, event: ProgressEvent) -> None:
        if event.kind == "discover":
            self._line(f"Scanning contributions for {event.year}...")
        elif event.kind == "shas":
            self._line(f"  {event.repo}: {event.count} commits")
        elif event.kind == "details":
            if event.detail:
                self._line(f"{event.total} commit details to fetch: {event.detail}")
            self._counter("Fetching commit details", event.fetched or 0, event.total or 0)
        elif event.kind == "pr-counts":
            self._counter("Fetching PR counts", event.fetched or 0, event.total or 0)
        elif event.kind == "aggregate":
            self._line("Aggregating statistics...")

    def on_phase(self, p: PhaseProgress) -> None:
        if p.status != "running":
            self._line(format_phase(p))

    def _counter(self, label: str, fetched: int, total: int) -> None:
        pct = fetched / total * 100 if total else 100.0
        text = f"{label}: {fetched}/{total} ({pct:.0f}%)"
        if self._inline:
            click.echo(f"\r{text}", file=self._stream, nl=False)
            self._open_line = fetched < total
            if not self._open_line:
                click.echo("", file=self._stream)
        else:
            click.echo(text, file=self._stream)

    def _line(self, text: str) -> None:
        if self._open_line:
            click.echo("", file=self._stream)
            self._open_line = False
        click.echo(text, file=self._stream)
