"""Progress tracking for the collection pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Literal

import structlog

log = structlog.get_logger("ghlangstats.progress")

EventKind = Literal["discover", "shas", "details", "pr-counts", "aggregate"]


@dataclass(frozen=True)
class ProgressEvent:
    """One notification sent to observers.

    ``discover`` carries ``year``; ``shas`` carries ``repo`` and ``count``;
    ``details`` and ``pr-counts`` carry ``fetched``/``total``.
    """

    kind: EventKind
    detail: str = ""
    year: int | None = None
    repo: str | None = None
    count: int | None = None
    fetched: int | None = None
    total: int | None = None


@dataclass
class PhaseProgress:
    phase: str
    status: str = "pending"  # "pending" | "running" | "completed" | "failed" | "skipped"
    start_time: float | None = None
    end_time: float | None = None
    detail: str = ""
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time and self.end_time:
            return round(self.end_time - self.start_time, 2)
        return None


class ProgressTracker:
    """Track pipeline phases and fan events out to observers.

    Observer failures are logged and swallowed; they never reach the pipeline.
    """

    def __init__(self) -> None:
        self.phases: list[PhaseProgress] = []
        self._by_name: dict[str, PhaseProgress] = {}
        self.callbacks: list[Callable[[PhaseProgress], None]] = []
        self.sinks: list[Callable[[ProgressEvent], None]] = []

    # ── events ──

    def emit(self, event: ProgressEvent) -> None:
        for sink in self.sinks:
            try:
                sink(event)
            except Exception:
                log.debug("progress.sink_error", kind=event.kind, exc_info=True)

    def year_scanned(self, year: int) -> None:
        self.emit(ProgressEvent("discover", detail=f"Scanning contributions for {year}", year=year))

    def repo_enumerated(self, repo: str, count: int) -> None:
        self.emit(ProgressEvent("shas", repo=repo, count=count))

    def details_fetched(self, fetched: int, total: int, detail: str = "") -> None:
        self.emit(ProgressEvent("details", detail=detail, fetched=fetched, total=total))

    def pr_counts_fetched(self, fetched: int, total: int) -> None:
        self.emit(ProgressEvent("pr-counts", fetched=fetched, total=total))

    def aggregate_started(self) -> None:
        self.emit(ProgressEvent("aggregate"))

    # ── phases ──

    def start_phase(self, phase: str) -> None:
        p = PhaseProgress(phase=phase, status="running", start_time=time.monotonic())
        self.phases.append(p)
        self._by_name[phase] = p
        self._notify(p)

    def complete_phase(self, phase: str, detail: str = "") -> None:
        p = self._by_name.get(phase)
        if p:
            p.status = "completed"
            p.end_time = time.monotonic()
            p.detail = detail
            self._notify(p)

    def fail_phase(self, phase: str, error: str) -> None:
        p = self._by_name.get(phase)
        if p:
            p.status = "failed"
            p.end_time = time.monotonic()
            p.error = error
            self._notify(p)

    def skip_phase(self, phase: str, reason: str) -> None:
        p = PhaseProgress(phase=phase, status="skipped", detail=reason)
        self.phases.append(p)
        self._by_name[phase] = p
        self._notify(p)

    def get_summary(self) -> dict[str, Any]:
        total_duration = sum(p.duration or 0 for p in self.phases)
        return {
            "phases": [
                {
                    "phase": p.phase,
                    "status": p.status,
                    "duration": p.duration,
                    "detail": p.detail,
                    "error": p.error,
                }
                for p in self.phases
            ],
            "total_duration": round(total_duration, 2),
        }

    def _notify(self, p: PhaseProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("progress.callback_error", phase=p.phase, exc_info=True)
