"""On-disk document for the progress store."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ghlangstats.engines.collector.models import CommitDetail, Repository

SCHEMA_VERSION = 1


class StoreDocument(BaseModel):
    """Versioned snapshot of everything collected for one identity.

    ``commit_details`` maps a sha to its detail, or to ``None`` for a
    tombstone; a sha absent from the map has not been fetched yet.
    """

    version: int = SCHEMA_VERSION
    repos: list[Repository] = Field(default_factory=list)
    completed_repos: list[str] = Field(default_factory=list)
    commits_by_repo: dict[str, list[str]] = Field(default_factory=dict)
    commit_details: dict[str, CommitDetail | None] = Field(default_factory=dict)
    pr_count_by_repo: dict[str, int] = Field(default_factory=dict)
    completed_pr_repos: list[str] = Field(default_factory=list)
