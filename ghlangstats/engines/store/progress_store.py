"""ProgressStore — versioned, crash-safe record of collection progress.

Per repository: SHA enumeration pending → complete, PR count pending →
complete. Per commit: unfetched → fetched (detail or tombstone). Both
completion flags and fetched commits are terminal.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

import structlog
from pydantic import ValidationError

from ghlangstats.engines.collector.models import CommitDetail, Repository
from ghlangstats.engines.store.schema import SCHEMA_VERSION, StoreDocument

log = structlog.get_logger("ghlangstats.store")


class ProgressStore:
    """In-memory progress document backed by one JSON file.

    With ``persist=False`` (or no path) the store never touches the disk.
    """

    def __init__(self, path: Path | str | None, *, persist: bool = True) -> None:
        self.path = Path(path) if path is not None else None
        self.persist = persist and self.path is not None
        self._doc = self._load(self.path) if self.persist else StoreDocument()
        self._completed = set(self._doc.completed_repos)
        self._completed_pr = set(self._doc.completed_pr_repos)
        self._dirty = False

    # ── persistence ────────────────────────────────────────────────────────

    def _load(self, path: Path) -> StoreDocument:
        """Read the file; anything unusable yields an empty document."""
        if not path.exists():
            return StoreDocument()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("store.unreadable", path=str(path), error=str(exc))
            return StoreDocument()

        version = raw.get("version") if isinstance(raw, dict) else None
        if version != SCHEMA_VERSION:
            log.warning(
                "store.version_mismatch",
                path=str(path),
                found=version,
                expected=SCHEMA_VERSION,
            )
            return StoreDocument()

        try:
            doc = StoreDocument.model_validate(raw)
        except ValidationError as exc:
            log.warning("store.invalid", path=str(path), errors=exc.error_count())
            return StoreDocument()
        log.debug(
            "store.loaded",
            path=str(path),
            repos=len(doc.repos),
            commits=len(doc.commit_details),
        )
        return doc

    def save(self) -> None:
        """Write the document atomically (temp file + rename)."""
        if not self.persist or self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._doc.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """True when there are mutations not yet written to disk."""
        return self._dirty

    def reset(self) -> None:
        """Discard all collected state."""
        self._doc = StoreDocument()
        self._completed.clear()
        self._completed_pr.clear()
        self._dirty = True

    # ── repositories ───────────────────────────────────────────────────────

    @property
    def repos(self) -> list[Repository]:
        return list(self._doc.repos)

    def add_repos(self, repos: Iterable[Repository]) -> int:
        """Union *repos* into the repository set by key; returns how many were new."""
        known = {r.key for r in self._doc.repos}
        added = 0
        for repo in repos:
            if repo.key in known:
                continue
            self._doc.repos.append(repo)
            known.add(repo.key)
            added += 1
        if added:
            self._dirty = True
        return added

    def is_repo_complete(self, repo: Repository) -> bool:
        return repo.key in self._completed

    def mark_repo_complete(self, repo: Repository) -> None:
        if repo.key not in self._completed:
            self._completed.add(repo.key)
            self._doc.completed_repos.append(repo.key)
            self._dirty = True

    # ── commits ────────────────────────────────────────────────────────────

    def get_commits(self, repo: Repository) -> list[str]:
        return list(self._doc.commits_by_repo.get(repo.key, []))

    def add_commits(self, repo: Repository, shas: Iterable[str]) -> int:
        """Append unseen *shas* for *repo*, keeping first-seen order; returns how many were new."""
        existing = self._doc.commits_by_repo.setdefault(repo.key, [])
        seen = set(existing)
        added = 0
        for sha in shas:
            if sha in seen:
                continue
            existing.append(sha)
            seen.add(sha)
            added += 1
        self._dirty = True
        return added

    def has_commit_detail(self, sha: str) -> bool:
        """True once *sha* was fetched, whether it resolved to a detail or a tombstone."""
        return sha in self._doc.commit_details

    def get_commit_detail(self, sha: str) -> CommitDetail | None:
        return self._doc.commit_details.get(sha)

    def set_commit_detail(self, sha: str, detail: CommitDetail | None) -> None:
        self._doc.commit_details[sha] = detail
        self._dirty = True

    def pending_commit_count(self, repos: Iterable[Repository] | None = None) -> int:
        """How many commit details are still unfetched for *repos* (default: all)."""
        return sum(
            1
            for shas in self._commit_lists(repos)
            for sha in shas
            if sha not in self._doc.commit_details
        )

    def total_commit_shas(self, repos: Iterable[Repository] | None = None) -> int:
        return sum(len(shas) for shas in self._commit_lists(repos))

    def _commit_lists(self, repos: Iterable[Repository] | None) -> list[list[str]]:
        if repos is None:
            return list(self._doc.commits_by_repo.values())
        return [self._doc.commits_by_repo.get(r.key, []) for r in repos]

    # ── pull requests ──────────────────────────────────────────────────────

    def is_repo_pr_complete(self, repo: Repository) -> bool:
        return repo.key in self._completed_pr

    def mark_repo_pr_complete(self, repo: Repository) -> None:
        if repo.key not in self._completed_pr:
            self._completed_pr.add(repo.key)
            self._doc.completed_pr_repos.append(repo.key)
            self._dirty = True

    def get_pr_count(self, repo: Repository) -> int | None:
        return self._doc.pr_count_by_repo.get(repo.key)

    def set_pr_count(self, repo: Repository, count: int) -> None:
        self._doc.pr_count_by_repo[repo.key] = count
        self._dirty = True

    # ── aggregation views ──────────────────────────────────────────────────

    def commits_by_repo(self, repos: Iterable[Repository]) -> dict[str, list[str]]:
        return {r.key: self.get_commits(r) for r in repos}

    @property
    def commit_details(self) -> dict[str, CommitDetail | None]:
        return dict(self._doc.commit_details)

    @property
    def pr_count_by_repo(self) -> dict[str, int]:
        return dict(self._doc.pr_count_by_repo)
