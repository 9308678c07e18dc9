"""File walker for discovering indexable files under a project root."""

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Directories that never contain source worth indexing
DEFAULT_EXCLUDED_DIRS = {
    "node_modules",
    "target",
    "dist",
    "build",
    "out",
    "vendor",
    "__pycache__",
    "venv",
    "env",
    "site-packages",
}

# Bytes inspected when sniffing for binary content
BINARY_SNIFF_BYTES = 8192


@dataclass
class FileEntry:
    """Information about a discovered file."""

    path: Path  # Absolute path
    relative_path: str  # Relative to the project root, POSIX separators
    size: int
    lines: int
    is_large: bool = False


def is_binary_file(path: Path) -> bool:
    """Return True when the file looks binary (contains a NUL byte)."""
    with path.open("rb") as f:
        return b"\x00" in f.read(BINARY_SNIFF_BYTES)


def load_gitignore(root: Path) -> list[str]:
    """Read the root .gitignore patterns, skipping comments and negations."""
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return []

    patterns: list[str] = []
    for raw in gitignore.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        patterns.append(line)
    return patterns


def is_ignored(relative_path: str, patterns: list[str]) -> bool:
    """Check a POSIX relative path against gitignore-style patterns."""
    parts = relative_path.split("/")
    for pattern in patterns:
        anchored = pattern.startswith("/")
        pat = pattern.strip("/")
        if not pat:
            continue
        if "/" in pat or anchored:
            # Path pattern: match the full path or any leading directory of it
            for i in range(1, len(parts) + 1):
                if fnmatch.fnmatch("/".join(parts[:i]), pat):
                    return True
        elif any(fnmatch.fnmatch(part, pat) for part in parts):
            return True
    return False


def scan_directory(
    root: Path,
    large_file_lines: int = 500,
    respect_gitignore: bool = True,
) -> list[FileEntry]:
    """
    Walk the project root and return every indexable text file.

    Hidden files and directories, well-known build and vendor directories
    and binary files are skipped. Files longer than ``large_file_lines`` are
    flagged with ``is_large`` but still returned.

    Args:
        root: Project root directory
        large_file_lines: Line count above which a file is flagged as large
        respect_gitignore: Apply the patterns from the root .gitignore

    Returns:
        FileEntry list sorted by relative path.
    """
    if not root.exists():
        return []

    root = root.resolve()
    patterns = load_gitignore(root) if respect_gitignore else []
    entries: list[FileEntry] = []

    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue

        relative_parts = file_path.relative_to(root).parts
        if any(part.startswith(".") for part in relative_parts):
            continue
        if any(part in DEFAULT_EXCLUDED_DIRS for part in relative_parts[:-1]):
            continue

        relative_path = "/".join(relative_parts)
        if patterns and is_ignored(relative_path, patterns):
            continue

        try:
            if is_binary_file(file_path):
                continue
            content = file_path.read_bytes()
        except OSError as e:
            logger.warning("Cannot read %s: %s", relative_path, e)
            continue

        line_count = content.count(b"\n")
        if content and not content.endswith(b"\n"):
            line_count += 1

        entries.append(
            FileEntry(
                path=file_path,
                relative_path=relative_path,
                size=len(content),
                lines=line_count,
                is_large=line_count > large_file_lines,
            )
        )

    return entries
