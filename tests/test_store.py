"""Tests for the durable progress store."""

from __future__ import annotations

import json

from conftest import detail, repo

from ghlangstats.engines.store import SCHEMA_VERSION, ProgressStore


class TestMerge:
    def test_add_commits_dedupes_in_first_seen_order(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        r = repo("o/r")
        assert store.add_commits(r, ["a", "b"]) == 2
        assert store.add_commits(r, ["b", "c"]) == 1
        assert store.get_commits(r) == ["a", "b", "c"]

    def test_commit_lists_are_per_repository(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        store.add_commits(repo("o/a"), ["x"])
        store.add_commits(repo("o/b"), ["x", "y"])
        assert store.get_commits(repo("o/a")) == ["x"]
        assert store.total_commit_shas() == 3
        assert store.total_commit_shas([repo("o/a")]) == 1

    def test_add_repos_unions_by_key(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        assert store.add_repos([repo("o/a", True), repo("o/b")]) == 2
        assert store.add_repos([repo("o/a", False), repo("o/c")]) == 1
        assert [r.key for r in store.repos] == ["o/a", "o/b", "o/c"]
        assert store.repos[0].is_private is True


class TestCompletion:
    def test_flags_are_independent(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        r = repo("o/r")
        store.mark_repo_complete(r)
        assert store.is_repo_complete(r)
        assert not store.is_repo_pr_complete(r)
        store.mark_repo_pr_complete(r)
        assert store.is_repo_pr_complete(r)

    def test_marking_twice_is_harmless(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        r = repo("o/r")
        store.mark_repo_complete(r)
        store.mark_repo_complete(r)
        store.save()
        raw = json.loads((tmp_path / "u.json").read_text())
        assert raw["completed_repos"] == ["o/r"]


class TestCommitDetails:
    def test_tombstone_is_fetched_but_empty(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        store.set_commit_detail("gone", None)
        assert store.has_commit_detail("gone")
        assert store.get_commit_detail("gone") is None
        assert not store.has_commit_detail("never-seen")

    def test_pending_count_skips_fetched(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        a, b = repo("o/a"), repo("o/b")
        store.add_commits(a, ["1", "2", "3"])
        store.add_commits(b, ["4"])
        store.set_commit_detail("1", detail("1", ("x.py", 1, 0)))
        store.set_commit_detail("2", None)
        assert store.pending_commit_count() == 2
        assert store.pending_commit_count([a]) == 1


class TestPersistence:
    def test_reload_keeps_everything(self, tmp_path):
        path = tmp_path / "u.json"
        store = ProgressStore(path)
        r = repo("o/r", is_private=True)
        store.add_repos([r])
        store.add_commits(r, ["a", "b"])
        store.mark_repo_complete(r)
        store.set_commit_detail("a", detail("a", ("src/main.go", 3, 1)))
        store.set_commit_detail("b", None)
        store.set_pr_count(r, 4)
        store.mark_repo_pr_complete(r)
        store.save()

        reloaded = ProgressStore(path)
        assert reloaded.repos == [r]
        assert reloaded.get_commits(r) == ["a", "b"]
        assert reloaded.is_repo_complete(r)
        assert reloaded.is_repo_pr_complete(r)
        assert reloaded.get_commit_detail("a").files[0].lines_changed == 4
        assert reloaded.has_commit_detail("b")
        assert reloaded.get_commit_detail("b") is None
        assert reloaded.get_pr_count(r) == 4

    def test_file_layout(self, tmp_path):
        path = tmp_path / "u.json"
        store = ProgressStore(path)
        store.add_repos([repo("o/r")])
        store.set_commit_detail("gone", None)
        store.save()
        raw = json.loads(path.read_text())
        assert raw["version"] == SCHEMA_VERSION
        assert raw["repos"] == [{"owner": "o", "name": "r", "is_private": None}]
        assert raw["commit_details"] == {"gone": None}

    def test_version_mismatch_starts_empty(self, tmp_path):
        path = tmp_path / "u.json"
        path.write_text(
            json.dumps({"version": SCHEMA_VERSION + 1, "repos": [{"owner": "o", "name": "r"}]})
        )
        store = ProgressStore(path)
        assert store.repos == []

    def test_missing_version_starts_empty(self, tmp_path):
        path = tmp_path / "u.json"
        path.write_text(json.dumps({"repos": [{"owner": "o", "name": "r"}]}))
        assert ProgressStore(path).repos == []

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "u.json"
        path.write_text("{not json")
        assert ProgressStore(path).repos == []

    def test_invalid_shape_starts_empty(self, tmp_path):
        path = tmp_path / "u.json"
        path.write_text(json.dumps({"version": SCHEMA_VERSION, "repos": "nope"}))
        assert ProgressStore(path).repos == []

    def test_save_is_atomic(self, tmp_path):
        path = tmp_path / "cache" / "u.json"
        store = ProgressStore(path)
        store.add_repos([repo("o/r")])
        store.save()
        store.add_repos([repo("o/s")])
        store.save()
        assert [p.name for p in path.parent.iterdir()] == ["u.json"]
        assert len(ProgressStore(path).repos) == 2

    def test_dirty_tracking(self, tmp_path):
        store = ProgressStore(tmp_path / "u.json")
        assert not store.dirty
        store.add_commits(repo("o/r"), ["a"])
        assert store.dirty
        store.save()
        assert not store.dirty

    def test_no_cache_never_writes(self, tmp_path):
        path = tmp_path / "u.json"
        store = ProgressStore(path, persist=False)
        store.add_repos([repo("o/r")])
        store.save()
        assert not path.exists()

    def test_no_cache_ignores_existing_file(self, tmp_path):
        path = tmp_path / "u.json"
        seeded = ProgressStore(path)
        seeded.add_repos([repo("o/r")])
        seeded.save()
        assert ProgressStore(path, persist=False).repos == []

    def test_reset(self, tmp_path):
        path = tmp_path / "u.json"
        store = ProgressStore(path)
        r = repo("o/r")
        store.add_repos([r])
        store.mark_repo_complete(r)
        store.save()

        store.reset()
        store.save()
        reloaded = ProgressStore(path)
        assert reloaded.repos == []
        assert not reloaded.is_repo_complete(r)
