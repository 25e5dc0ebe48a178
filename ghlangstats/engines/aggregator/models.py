"""Output schema of the aggregator — serialised with camelCase keys."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RepoStats(_CamelModel):
    """Per-repository breakdown."""

    languages: dict[str, int] = Field(default_factory=dict)
    commit_dates: list[str] | None = None
    pr_count: int | None = None
    is_private: bool | None = None


class StatsMeta(_CamelModel):
    user: str
    generated_at: str
    total_commits_processed: int
    total_repos: int
    unit: Literal["lines_changed"] = "lines_changed"


class AggregatedStats(_CamelModel):
    """Lines changed per language, globally and per repository."""

    totals: dict[str, int] = Field(default_factory=dict)
    by_repo: dict[str, RepoStats] = Field(default_factory=dict)
    meta: StatsMeta

    def to_json(self, *, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
