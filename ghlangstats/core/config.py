"""Runtime settings — environment variables with per-call overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

from ghlangstats.exceptions import ConfigError

PER_PAGE = 100
SAFETY_MARGIN_SECONDS = 5
MIN_WAIT_SECONDS = 5
DEFAULT_RETRY_AFTER = 60
SEARCH_CEILING = 30
SEARCH_WINDOW_SECONDS = 60
YEAR_PAUSE_SECONDS = 0.1
FROM_YEAR_LOOKBACK = 10
DEFAULT_CACHE_DIRNAME = ".github-lang-stats-cache"


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def default_from_year(now: datetime | None = None) -> int:
    """Earliest year scanned when the caller gives none: ten years back."""
    now = now or datetime.now(timezone.utc)
    return now.year - FROM_YEAR_LOOKBACK


@dataclass(frozen=True)
class Settings:
    """Knobs shared by the client, the store and the runner."""

    token: str | None = None
    cache_dir: Path = Path(DEFAULT_CACHE_DIRNAME)
    concurrency: int = 5
    core_reserve: int = 100
    search_reserve: int = 2
    request_timeout: float = 30.0
    max_retry_after: int = 900
    flush_stride: int = 50
    pr_pacing: float = 2.0

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``GITHUB_TOKEN`` and ``GHLANGSTATS_*`` variables."""
        cache_dir = os.environ.get("GHLANGSTATS_CACHE_DIR")
        return cls(
            token=os.environ.get("GITHUB_TOKEN") or None,
            cache_dir=Path(cache_dir) if cache_dir else Path.cwd() / DEFAULT_CACHE_DIRNAME,
            concurrency=_env_int("GHLANGSTATS_CONCURRENCY", 5),
            core_reserve=_env_int("GHLANGSTATS_CORE_RESERVE", 100),
            search_reserve=_env_int("GHLANGSTATS_SEARCH_RESERVE", 2),
            request_timeout=_env_float("GHLANGSTATS_REQUEST_TIMEOUT", 30.0),
            max_retry_after=_env_int("GHLANGSTATS_MAX_RETRY_AFTER", 900),
            flush_stride=_env_int("GHLANGSTATS_FLUSH_STRIDE", 50),
            pr_pacing=_env_float("GHLANGSTATS_PR_PACING", 2.0),
        )

    def with_overrides(self, **overrides: object) -> Settings:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def store_path(self, user: str) -> Path:
        return self.cache_dir / f"{user}.json"
