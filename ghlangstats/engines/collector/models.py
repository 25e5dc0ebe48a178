"""Data models for the collection engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ghlangstats.core.github import repo_key


class Repository(BaseModel):
    """A repository the analysed user has access to or contributed to."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    is_private: bool | None = None

    @property
    def key(self) -> str:
        return repo_key(self.owner, self.name)


class FileChange(BaseModel):
    """One file touched by a commit."""

    model_config = ConfigDict(frozen=True)

    filename: str
    additions: int = 0
    deletions: int = 0
    status: str = "modified"

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


class CommitDetail(BaseModel):
    """Fetched payload of one authored commit.

    A tombstone (fetched but unavailable) is represented by ``None`` in the
    store, never by an empty ``CommitDetail``.
    """

    model_config = ConfigDict(frozen=True)

    sha: str
    date: datetime | None = None
    files: list[FileChange] = []


@dataclass(frozen=True)
class Viewer:
    """Identity behind the credential: login plus GraphQL node id."""

    login: str
    node_id: str


@dataclass(frozen=True)
class CommitRef:
    """A (repository, sha) unit of work for the detail phase."""

    repo: Repository
    sha: str


@dataclass
class EnumerationResult:
    """Outcome of walking one repository's authored history.

    ``truncated`` is set when a page failed part-way; ``shas`` then holds
    whatever was collected before the failure.
    """

    repo: Repository
    shas: list[str] = field(default_factory=list)
    truncated: bool = False
    error: str | None = None


@dataclass
class DiscoveryResult:
    """Union of the discovery methods plus the years that could not be scanned."""

    repos: list[Repository] = field(default_factory=list)
    failed_years: list[int] = field(default_factory=list)
