"""GitHub repository identifier helpers."""

from __future__ import annotations


def repo_key(owner: str, name: str) -> str:
    """Canonical ``owner/name`` key used by the store and the output."""
    return f"{owner}/{name}"


def parse_repo_key(value: str) -> tuple[str, str]:
    """Extract (owner, name) from ``owner/name`` or a GitHub URL.

    Raises ValueError if the value cannot be parsed.
    """
    result = _extract_owner_repo(value)
    if result is None:
        raise ValueError(f"cannot parse GitHub repository: {value!r}")
    owner, name = result.split("/", 1)
    return owner, name


def parse_repo_list(raw: str | None) -> list[str]:
    """Split a comma-separated allow-list into canonical ``owner/name`` keys."""
    if not raw:
        return []
    keys: list[str] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        key = repo_key(*parse_repo_key(part))
        if key not in keys:
            keys.append(key)
    return keys


def _extract_owner_repo(value: str) -> str | None:
    """Extract 'owner/name' from a bare key or a GitHub URL.

    Handles:
      - owner/name
      - https://github.com/owner/name
      - https://github.com/owner/name.git
      - git@github.com:owner/name.git
    """
    value = value.strip().rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    # SSH format: git@github.com:owner/name
    if value.startswith("git@"):
        colon_idx = value.find(":")
        if colon_idx == -1:
            return None
        value = value[colon_idx + 1 :]

    parts = value.split("/")
    if len(parts) == 2:
        owner, name = parts
    elif len(parts) > 2 and "github.com" in parts:
        idx = parts.index("github.com")
        if len(parts) < idx + 3:
            return None
        owner, name = parts[idx + 1], parts[idx + 2]
    else:
        return None
    if not owner or not name:
        return None
    return f"{owner}/{name}"
