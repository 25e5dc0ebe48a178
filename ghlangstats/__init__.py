"""github-lang-stats: lines changed per programming language across a user's GitHub commits."""

__version__ = "1.0.0"

from ghlangstats.api import get_github_lang_stats, list_repositories
from ghlangstats.engines.aggregator import AggregatedStats, RepoStats, StatsMeta, aggregate
from ghlangstats.engines.collector.models import CommitDetail, FileChange, Repository
from ghlangstats.engines.collector.runner import LangStatsRunner, RunOptions, RunResult, RunSummary
from ghlangstats.engines.store import ProgressStore
from ghlangstats.exceptions import (
    ConfigError,
    GitHubAPIError,
    GraphQLError,
    LangStatsError,
    MalformedResponseError,
    RateLimitError,
)

__all__ = [
    "AggregatedStats",
    "CommitDetail",
    "ConfigError",
    "FileChange",
    "GitHubAPIError",
    "GraphQLError",
    "LangStatsError",
    "LangStatsRunner",
    "MalformedResponseError",
    "ProgressStore",
    "RateLimitError",
    "RepoStats",
    "Repository",
    "RunOptions",
    "RunResult",
    "RunSummary",
    "StatsMeta",
    "aggregate",
    "get_github_lang_stats",
    "list_repositories",
]
