"""Tests for the aggregator — pure reduction of commit details."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from conftest import detail, repo

from ghlangstats.engines.aggregator import aggregate

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _run(commits_by_repo, details, **kwargs):
    kwargs.setdefault("generated_at", NOW)
    return aggregate("me", commits_by_repo, details, **kwargs)


class TestSums:
    def test_lines_changed_per_language(self):
        details = {
            "sha1": detail("sha1", ("src/index.ts", 10, 2)),
            "sha2": detail("sha2", ("package.json", 5, 0)),
        }
        stats = _run({"o/r": ["sha1", "sha2"]}, details)
        assert stats.totals == {"TypeScript": 12}
        assert stats.by_repo["o/r"].languages == {"TypeScript": 12}

    def test_caller_exclusions(self):
        details = {
            "sha1": detail("sha1", ("src/index.ts", 10, 2)),
            "sha2": detail("sha2", ("package.json", 5, 0)),
        }
        stats = _run({"o/r": ["sha1", "sha2"]}, details, exclude_languages=["TypeScript"])
        assert stats.totals == {}
        assert stats.by_repo == {}

    def test_caller_exclusions_match_exact_labels(self):
        stats = _run({"o/r": ["a"]}, {"a": detail("a", ("x.py", 3, 0))}, exclude_languages=["python"])
        assert stats.totals == {"Python": 3}

    def test_ties_keep_insertion_order(self):
        stats = _run({"o/r": ["a"]}, {"a": detail("a", ("z.go", 2, 0), ("a.py", 1, 1))})
        assert list(stats.totals) == ["Go", "Python"]

    def test_unknown_extensions_skipped(self):
        stats = _run({"o/r": ["a"]}, {"a": detail("a", ("LICENSE", 20, 0), ("blob.xyz", 3, 3))})
        assert stats.totals == {}

    def test_totals_span_repositories(self):
        details = {
            "a": detail("a", ("x.py", 10, 0)),
            "b": detail("b", ("y.py", 1, 1), ("z.go", 4, 0)),
        }
        stats = _run({"o/one": ["a"], "o/two": ["b"]}, details)
        assert stats.totals == {"Python": 12, "Go": 4}
        assert stats.by_repo["o/two"].languages == {"Go": 4, "Python": 2}

    def test_tombstones_and_unfetched_count_zero(self):
        details = {"a": detail("a", ("x.rs", 3, 0)), "gone": None}
        stats = _run({"o/r": ["a", "gone", "never-fetched"]}, details)
        assert stats.totals == {"Rust": 3}
        assert stats.meta.total_commits_processed == 1


class TestOrdering:
    def test_descending_by_lines(self):
        details = {
            "a": detail("a", ("main.go", 5, 0), ("lib.rs", 50, 0), ("app.py", 20, 0)),
        }
        stats = _run({"o/r": ["a"]}, details)
        assert list(stats.totals) == ["Rust", "Python", "Go"]
        assert list(stats.by_repo["o/r"].languages) == ["Rust", "Python", "Go"]

    def test_repository_keys_sorted(self):
        details = {"a": detail("a", ("x.py", 1, 0)), "b": detail("b", ("x.py", 1, 0))}
        stats = _run({"zed/r": ["a"], "alpha/r": ["b"]}, details)
        assert list(stats.by_repo) == ["alpha/r", "zed/r"]


class TestCommitDates:
    def test_day_granularity_not_deduplicated(self):
        details = {
            "a": detail("a", ("x.py", 1, 0), date="2024-05-01T08:00:00Z"),
            "b": detail("b", ("x.py", 1, 0), date="2024-05-01T20:00:00Z"),
            "c": detail("c", ("x.py", 1, 0), date="2024-05-02T00:30:00+02:00"),
        }
        stats = _run({"o/r": ["a", "b", "c"]}, details)
        assert stats.by_repo["o/r"].commit_dates == ["2024-05-01", "2024-05-01", "2024-05-01"]

    def test_dates_disabled(self):
        stats = _run({"o/r": ["a"]}, {"a": detail("a", ("x.py", 1, 0))}, include_commit_dates=False)
        assert stats.by_repo["o/r"].commit_dates is None


class TestMetadata:
    def test_pr_counts_and_visibility(self):
        stats = _run(
            {"o/r": ["a"]},
            {"a": detail("a", ("x.py", 1, 0))},
            pr_count_by_repo={"o/r": 4},
            repositories=[repo("o/r", is_private=True)],
        )
        assert stats.by_repo["o/r"].pr_count == 4
        assert stats.by_repo["o/r"].is_private is True

    def test_pr_counts_disabled(self):
        stats = _run(
            {"o/r": ["a"]},
            {"a": detail("a", ("x.py", 1, 0))},
            pr_count_by_repo={"o/r": 4},
            include_pr_counts=False,
        )
        assert stats.by_repo["o/r"].pr_count is None

    def test_meta(self):
        stats = _run({"o/r": ["a"], "o/empty": []}, {"a": detail("a", ("x.py", 1, 0))})
        assert stats.meta.user == "me"
        assert stats.meta.generated_at == "2025-01-01T00:00:00Z"
        assert stats.meta.total_repos == 1
        assert stats.meta.unit == "lines_changed"


class TestJSON:
    def test_camel_case_and_omitted_nulls(self):
        stats = _run(
            {"o/r": ["a"]},
            {"a": detail("a", ("x.py", 1, 0))},
            pr_count_by_repo={"o/r": 2},
        )
        payload = json.loads(stats.to_json())
        assert set(payload) == {"totals", "byRepo", "meta"}
        assert payload["byRepo"]["o/r"] == {
            "languages": {"Python": 1},
            "commitDates": ["2024-03-05"],
            "prCount": 2,
        }
        assert payload["meta"] == {
            "user": "me",
            "generatedAt": "2025-01-01T00:00:00Z",
            "totalCommitsProcessed": 1,
            "totalRepos": 1,
            "unit": "lines_changed",
        }
