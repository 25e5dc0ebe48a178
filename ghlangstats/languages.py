"""Filename → language label lookup (Linguist-style names)."""

from __future__ import annotations

import posixpath

EXT_MAP: dict[str, str] = {
    # TypeScript / JavaScript
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".mts": "TypeScript",
    ".cts": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    # Web
    ".html": "HTML",
    ".htm": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".sass": "Sass",
    ".less": "Less",
    ".svelte": "Svelte",
    ".vue": "Vue",
    ".astro": "Astro",
    # Backend / systems
    ".py": "Python",
    ".pyi": "Python",
    ".rb": "Ruby",
    ".go": "Go",
    ".rs": "Rust",
    ".java": "Java",
    ".kt": "Kotlin",
    ".kts": "Kotlin",
    ".cs": "C#",
    ".cpp": "C++",
    ".cc": "C++",
    ".cxx": "C++",
    ".hpp": "C++",
    ".c": "C",
    ".h": "C",
    ".swift": "Swift",
    ".php": "PHP",
    ".scala": "Scala",
    ".clj": "Clojure",
    ".cljs": "ClojureScript",
    ".ex": "Elixir",
    ".exs": "Elixir",
    ".erl": "Erlang",
    ".hrl": "Erlang",
    ".hs": "Haskell",
    ".lhs": "Haskell",
    ".ml": "OCaml",
    ".mli": "OCaml",
    ".fs": "F#",
    ".fsi": "F#",
    ".fsx": "F#",
    ".dart": "Dart",
    ".lua": "Lua",
    ".r": "R",
    ".m": "MATLAB",
    ".jl": "Julia",
    ".nim": "Nim",
    ".zig": "Zig",
    ".cr": "Crystal",
    ".d": "D",
    # Shell / scripts
    ".sh": "Shell",
    ".bash": "Shell",
    ".zsh": "Shell",
    ".fish": "Shell",
    ".env": "Shell",
    ".ps1": "PowerShell",
    ".psm1": "PowerShell",
    ".bat": "Batchfile",
    ".cmd": "Batchfile",
    # Data / config
    ".json": "JSON",
    ".jsonc": "JSON",
    ".json5": "JSON5",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".toml": "TOML",
    ".xml": "XML",
    ".csv": "CSV",
    ".tsv": "TSV",
    ".ini": "INI",
    # Infrastructure
    ".tf": "HCL",
    ".tfvars": "HCL",
    ".hcl": "HCL",
    ".bicep": "Bicep",
    ".dockerfile": "Dockerfile",
    # SQL
    ".sql": "SQL",
    ".pgsql": "SQL",
    ".mysql": "SQL",
    # Documentation
    ".md": "Markdown",
    ".mdx": "MDX",
    ".rst": "reStructuredText",
    ".tex": "TeX",
    # API schemas
    ".graphql": "GraphQL",
    ".gql": "GraphQL",
    ".proto": "Protocol Buffer",
    # Other
    ".nix": "Nix",
    ".pkl": "Pkl",
    ".wasm": "WebAssembly",
    ".wat": "WebAssembly",
}

# Exact basenames without a useful extension.
FILENAME_MAP: dict[str, str] = {
    "Dockerfile": "Dockerfile",
    "Makefile": "Makefile",
    "Gemfile": "Ruby",
    "Rakefile": "Ruby",
    "Podfile": "Ruby",
    "Vagrantfile": "Ruby",
    "Brewfile": "Ruby",
    ".eslintrc": "JSON",
    ".prettierrc": "JSON",
    ".babelrc": "JSON",
    ".nvmrc": "Shell",
    ".node-version": "Shell",
}

# Catch-all, config and doc formats left out of the statistics by default.
EXCLUDED_LANGUAGES: frozenset[str] = frozenset(
    {
        "JSON",
        "YAML",
        "TOML",
        "XML",
        "CSV",
        "TSV",
        "INI",
        "Markdown",
        "MDX",
        "reStructuredText",
        "TeX",
    }
)


def detect_language(filename: str) -> str | None:
    """Language label for *filename* (a repository-relative path), or None."""
    basename = posixpath.basename(filename)
    special = FILENAME_MAP.get(basename)
    if special:
        return special
    dot = basename.rfind(".")
    if dot == -1:
        return None
    return EXT_MAP.get(basename[dot:].lower())


def is_excluded_language(language: str) -> bool:
    return language in EXCLUDED_LANGUAGES
