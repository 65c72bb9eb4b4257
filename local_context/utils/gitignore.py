"""Gitignore pattern matching for projects without a git index.

When a project is not a git checkout, its file index is built by walking the
tree and dropping whatever the root ``.gitignore`` (plus a fixed set of
default patterns) excludes.

Supports:
- Glob patterns (*, ?, [...])
- Directory-only patterns (trailing /)
- Negation patterns (leading !)
- Anchored patterns (leading /) and full-path vs. basename matching
- Nested .gitignore is NOT supported (only root .gitignore)
"""

import fnmatch
import os
from pathlib import Path
from typing import Iterator, List, Optional, Tuple


class GitignoreParser:
    """Root ``.gitignore`` matcher over project-relative POSIX paths.

    The hardcoded DEFAULT_IGNORE_PATTERNS apply first, so a ``.gitignore``
    negation can re-include them.
    """

    DEFAULT_IGNORE_PATTERNS: List[str] = [
        ".git/",
        ".hg/",
        ".svn/",
        "__pycache__/",
        ".venv/",
        "venv/",
        "node_modules/",
        ".mypy_cache/",
        ".pytest_cache/",
        ".DS_Store",
        "*.swp",
        "*.swo",
    ]

    def __init__(
        self,
        root: Path,
        include_defaults: bool = True,
        extra_patterns: Optional[List[str]] = None,
    ):
        """Initialize with the project root.

        Args:
            root: Directory holding the .gitignore file.
            include_defaults: Whether to prepend DEFAULT_IGNORE_PATTERNS.
            extra_patterns: Additional patterns, applied last.
        """
        self._root = Path(root)
        self._patterns: List[Tuple[str, bool]] = []  # (pattern, is_negation)

        if include_defaults:
            for pat in self.DEFAULT_IGNORE_PATTERNS:
                self._add_pattern(pat)

        self._load_gitignore()

        for pat in extra_patterns or []:
            self._add_pattern(pat)

    @property
    def root(self) -> Path:
        return self._root

    def _add_pattern(self, line: str) -> None:
        is_negation = line.startswith("!")
        if is_negation:
            line = line[1:]
        if line:
            self._patterns.append((line, is_negation))

    def _load_gitignore(self) -> None:
        """Load patterns from the root .gitignore file."""
        gitignore_path = self._root / ".gitignore"
        if not gitignore_path.is_file():
            return

        try:
            content = gitignore_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            self._add_pattern(line)

    @staticmethod
    def _matches(pattern: str, rel_path: str, is_dir: bool) -> bool:
        parts = rel_path.split("/")

        if pattern.endswith("/"):
            # Directory-only: the path itself if it is a directory, or any parent
            pattern = pattern[:-1]
            candidates = parts if is_dir else parts[:-1]
            if pattern.startswith("/") or "/" in pattern:
                pattern = pattern.lstrip("/")
                return any(
                    fnmatch.fnmatchcase("/".join(parts[:i + 1]), pattern)
                    for i in range(len(candidates))
                )
            return any(fnmatch.fnmatchcase(part, pattern) for part in candidates)

        if pattern.startswith("/") or "/" in pattern:
            return fnmatch.fnmatchcase(rel_path, pattern.lstrip("/"))

        return any(fnmatch.fnmatchcase(part, pattern) for part in parts)

    def is_ignored(self, rel_path: str, is_dir: bool = False) -> bool:
        """Check whether a project-relative POSIX path is ignored.

        Later patterns override earlier ones, as in git.
        """
        ignored = False
        for pattern, is_negation in self._patterns:
            if self._matches(pattern, rel_path, is_dir):
                ignored = not is_negation
        return ignored

    def iter_files(self) -> Iterator[Path]:
        """Walk the root and yield absolute paths of files that are not ignored.

        Directories are visited in sorted order and ignored directories are
        not descended into, so the output order is stable.
        """
        for dirpath, dirnames, filenames in os.walk(self._root):
            rel_dir = Path(dirpath).relative_to(self._root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"

            dirnames[:] = sorted(
                d for d in dirnames
                if not self.is_ignored(prefix + d, is_dir=True)
            )
            for name in sorted(filenames):
                if not self.is_ignored(prefix + name):
                    yield Path(dirpath) / name
