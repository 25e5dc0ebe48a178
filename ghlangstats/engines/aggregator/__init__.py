"""Aggregator engine — commit details to per-language line counts."""

from ghlangstats.engines.aggregator.aggregator import aggregate
from ghlangstats.engines.aggregator.models import AggregatedStats, RepoStats, StatsMeta

__all__ = [
    "AggregatedStats",
    "RepoStats",
    "StatsMeta",
    "aggregate",
]
