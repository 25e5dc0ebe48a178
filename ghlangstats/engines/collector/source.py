"""Remote work source — discovery, history traversal and detail fetches.

Pure API collection: nothing here touches the progress store.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from ghlangstats.core.config import PER_PAGE, YEAR_PAUSE_SECONDS
from ghlangstats.engines.collector.github_client import GitHubClient
from ghlangstats.engines.collector.models import (
    CommitDetail,
    DiscoveryResult,
    EnumerationResult,
    FileChange,
    Repository,
    Viewer,
)
from ghlangstats.engines.collector.rate_budget import Domain, RateLimitInfo, Sleep
from ghlangstats.exceptions import GitHubAPIError, LangStatsError, MalformedResponseError

log = structlog.get_logger("ghlangstats.collector")

# Statuses that mean "nothing there" rather than failure.
_ABSENT_STATUSES = frozenset({404, 422})

_VIEWER_QUERY = "query { viewer { login id } }"

_USER_ID_QUERY = "query($login: String!) { user(login: $login) { id } }"

_CONTRIBUTIONS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      commitContributionsByRepository(maxRepositories: 100) {
        repository {
          owner { login }
          name
          isPrivate
        }
      }
    }
  }
}
"""

_HISTORY_QUERY = """
query($owner: String!, $repo: String!, $authorId: ID!, $cursor: String, $since: GitTimestamp) {
  repository(owner: $owner, name: $repo) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(author: { id: $authorId }, first: 100, after: $cursor, since: $since) {
            nodes { oid }
            pageInfo { hasNextPage endCursor }
          }
        }
      }
    }
  }
}
"""


class WorkSource:
    """Issues the remote queries of the pipeline and normalises their results."""

    def __init__(
        self,
        client: GitHubClient,
        *,
        sleep: Sleep = asyncio.sleep,
        current_year: int | None = None,
    ) -> None:
        self._client = client
        self._sleep = sleep
        self._current_year = current_year
        self._viewer: Viewer | None = None
        self._node_ids: dict[str, str] = {}

    def rate_limit_info(self, domain: Domain = Domain.CORE) -> RateLimitInfo:
        return self._client.tracker.info(domain)

    # ── identity ──────────────────────────────────────────────────────────

    async def resolve_viewer(self) -> Viewer:
        """Login and node id of the credential's owner (memoised per run)."""
        if self._viewer is None:
            data = await self._client.graphql(_VIEWER_QUERY)
            viewer = data.get("viewer") or {}
            login, node_id = viewer.get("login"), viewer.get("id")
            if not login or not node_id:
                raise MalformedResponseError("viewer query returned no login/id")
            self._viewer = Viewer(login=login, node_id=node_id)
            self._node_ids[login.lower()] = node_id
        return self._viewer

    async def get_user_node_id(self, login: str) -> str:
        """GraphQL node id for *login*; reuses the viewer lookup when it matches."""
        cached = self._node_ids.get(login.lower())
        if cached:
            return cached
        data = await self._client.graphql(_USER_ID_QUERY, {"login": login})
        user = data.get("user")
        if not user or not user.get("id"):
            raise MalformedResponseError(f"no GitHub user named {login!r}")
        self._node_ids[login.lower()] = user["id"]
        return user["id"]

    # ── discovery ─────────────────────────────────────────────────────────

    async def list_owned_repositories(self) -> list[Repository]:
        """GET /user/repos — everything the credential owns, collaborates on or sees via orgs."""
        repos: list[Repository] = []
        page = 1
        while True:
            batch = await self._client.get_json(
                "/user/repos",
                {
                    "affiliation": "owner,collaborator,organization_member",
                    "per_page": PER_PAGE,
                    "page": page,
                },
            )
            if not isinstance(batch, list):
                raise MalformedResponseError("/user/repos did not return a list")
            for item in batch:
                repos.append(
                    Repository(
                        owner=item["owner"]["login"],
                        name=item["name"],
                        is_private=item.get("private"),
                    )
                )
            if len(batch) < PER_PAGE:
                break
            page += 1
        return repos

    async def discover_contributed_repositories(
        self,
        user: str,
        from_year: int,
        *,
        on_year: Callable[[int], None] | None = None,
    ) -> DiscoveryResult:
        """Scan ``contributionsCollection`` one calendar year at a time.

        A failing year is logged and skipped; the scan carries on.
        """
        result = DiscoveryResult()
        seen: dict[str, Repository] = {}
        current_year = self._current_year or datetime.now(timezone.utc).year

        for year in range(from_year, current_year + 1):
            if on_year is not None:
                on_year(year)
            try:
                data = await self._client.graphql(
                    _CONTRIBUTIONS_QUERY,
                    {
                        "login": user,
                        "from": f"{year}-01-01T00:00:00Z",
                        "to": f"{year}-12-31T23:59:59Z",
                    },
                )
                entries = data["user"]["contributionsCollection"]["commitContributionsByRepository"]
                for entry in entries:
                    repo_data = entry["repository"]
                    repo = Repository(
                        owner=repo_data["owner"]["login"],
                        name=repo_data["name"],
                        is_private=repo_data.get("isPrivate"),
                    )
                    seen.setdefault(repo.key, repo)
            except (LangStatsError, httpx.HTTPError, KeyError, TypeError) as exc:
                log.warning("collector.year_failed", user=user, year=year, error=str(exc))
                result.failed_years.append(year)

            await self._sleep(YEAR_PAUSE_SECONDS)

        result.repos = list(seen.values())
        return result

    async def discover_repositories(
        self,
        user: str,
        from_year: int,
        *,
        on_year: Callable[[int], None] | None = None,
    ) -> DiscoveryResult:
        """Union of owned/collaborator repositories and the contribution scan."""
        owned = await self.list_owned_repositories()
        contributed = await self.discover_contributed_repositories(
            user, from_year, on_year=on_year
        )
        merged: dict[str, Repository] = {}
        for repo in [*owned, *contributed.repos]:
            existing = merged.get(repo.key)
            if existing is None:
                merged[repo.key] = repo
            elif existing.is_private is None and repo.is_private is not None:
                merged[repo.key] = repo
        log.info(
            "collector.discovered",
            user=user,
            owned=len(owned),
            contributed=len(contributed.repos),
            total=len(merged),
        )
        return DiscoveryResult(repos=list(merged.values()), failed_years=contributed.failed_years)

    # ── commits ───────────────────────────────────────────────────────────

    async def enumerate_authored_commits(
        self,
        repo: Repository,
        author_id: str,
        since_year: int | None = None,
    ) -> EnumerationResult:
        """Walk the default branch history filtered to *author_id*.

        A failing page stops the walk; hashes gathered so far are returned
        with ``truncated`` set.
        """
        result = EnumerationResult(repo=repo)
        cursor: str | None = None
        since = f"{since_year}-01-01T00:00:00Z" if since_year else None

        while True:
            try:
                data = await self._client.graphql(
                    _HISTORY_QUERY,
                    {
                        "owner": repo.owner,
                        "repo": repo.name,
                        "authorId": author_id,
                        "cursor": cursor,
                        "since": since,
                    },
                )
                history = _history_of(data)
                if history is None:
                    break
                for node in history["nodes"]:
                    result.shas.append(node["oid"])
                page_info = history["pageInfo"]
            except (LangStatsError, httpx.HTTPError, KeyError, TypeError) as exc:
                log.warning(
                    "collector.enumeration_truncated",
                    repo=repo.key,
                    collected=len(result.shas),
                    error=str(exc),
                )
                result.truncated = True
                result.error = str(exc)
                break

            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
        return result

    async def fetch_commit_detail(self, repo: Repository, sha: str) -> CommitDetail | None:
        """GET /repos/{owner}/{repo}/commits/{sha} — ``None`` when the commit is gone."""
        path = f"/repos/{repo.owner}/{repo.name}/commits/{sha}"
        resp = await self._client.request("GET", path)
        if resp.status_code in _ABSENT_STATUSES:
            log.debug("collector.commit_absent", repo=repo.key, sha=sha, status=resp.status_code)
            return None
        if not resp.is_success:
            raise GitHubAPIError(resp.status_code, path, GitHubClient.error_message(resp))

        body = GitHubClient.parse_json(resp)
        if not isinstance(body, dict):
            raise MalformedResponseError(f"commit {sha} response is not an object")
        author = (body.get("commit") or {}).get("author") or {}
        return CommitDetail(
            sha=body.get("sha") or sha,
            date=_parse_datetime(author.get("date")),
            files=[
                FileChange(
                    filename=f["filename"],
                    additions=f.get("additions") or 0,
                    deletions=f.get("deletions") or 0,
                    status=f.get("status") or "modified",
                )
                for f in body.get("files") or []
            ],
        )

    async def fetch_pr_count(self, repo: Repository, username: str) -> int:
        """Search API: number of PRs *username* opened against *repo*."""
        path = "/search/issues"
        resp = await self._client.request(
            "GET",
            path,
            domain=Domain.SEARCH,
            params={
                "q": f"author:{username} type:pr repo:{repo.owner}/{repo.name}",
                "per_page": 1,
            },
        )
        if resp.status_code in _ABSENT_STATUSES:
            return 0
        if not resp.is_success:
            raise GitHubAPIError(resp.status_code, path, GitHubClient.error_message(resp))
        body = GitHubClient.parse_json(resp)
        try:
            return int(body["total_count"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError("search response has no total_count") from exc


# ── helpers ───────────────────────────────────────────────────────────────


def _history_of(data: dict[str, Any]) -> dict[str, Any] | None:
    """Dig the history connection out of a response; None for empty repos."""
    repository = data.get("repository")
    if not repository:
        return None
    branch = repository.get("defaultBranchRef")
    if not branch:
        return None
    target = branch.get("target") or {}
    return target.get("history")


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 datetime string, returning None on failure."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
