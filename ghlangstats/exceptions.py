"""Custom exceptions for github-lang-stats."""

from __future__ import annotations


class LangStatsError(Exception):
    """Base exception for all github-lang-stats errors."""


class ConfigError(LangStatsError):
    """Invalid configuration or run options (missing token, bad year, ...)."""


class GitHubAPIError(LangStatsError):
    """GitHub returned a non-success status that is neither absence nor a rate limit."""

    def __init__(self, status: int, url: str, message: str = "") -> None:
        self.status = status
        self.url = url
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"GitHub API request failed ({status}) for {url}{detail}")


class RateLimitError(LangStatsError):
    """Raised when a secondary rate limit persists after the single permitted retry."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class GraphQLError(LangStatsError):
    """GraphQL response carried ``errors`` and no usable ``data``."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        super().__init__(f"GraphQL errors: {'; '.join(messages) or 'unknown'}")


class MalformedResponseError(LangStatsError):
    """Response body does not have the shape we expect."""
