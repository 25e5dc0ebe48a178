"""Collector engine — GitHub discovery and commit collection without store access.

The orchestrating runner lives in ``ghlangstats.engines.collector.runner``.
"""

from ghlangstats.engines.collector.github_client import GitHubClient
from ghlangstats.engines.collector.models import (
    CommitDetail,
    CommitRef,
    DiscoveryResult,
    EnumerationResult,
    FileChange,
    Repository,
    Viewer,
)
from ghlangstats.engines.collector.rate_budget import (
    Domain,
    RateBudget,
    RateBudgetTracker,
    RateLimitInfo,
)
from ghlangstats.engines.collector.source import WorkSource

__all__ = [
    "CommitDetail",
    "CommitRef",
    "DiscoveryResult",
    "Domain",
    "EnumerationResult",
    "FileChange",
    "GitHubClient",
    "RateBudget",
    "RateBudgetTracker",
    "RateLimitInfo",
    "Repository",
    "Viewer",
    "WorkSource",
]
