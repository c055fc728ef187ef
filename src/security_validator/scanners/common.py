"""Shared utilities for security pattern scanners."""

import logging
import os
import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..suppression import FileMarker, extract_markers

logger = logging.getLogger(__name__)


# Dependency caches; hidden directories are skipped as well
DEFAULT_SKIP_DIRS: frozenset[str] = frozenset({
    "node_modules",
    "bower_components",
    "vendor",
    "venv",
})

SOURCE_EXTENSIONS: frozenset[str] = frozenset({
    ".ts", ".tsx", ".js", ".jsx",
})

JSX_EXTENSIONS: frozenset[str] = frozenset({".tsx", ".jsx"})

TEST_INDICATORS = (".test.", ".spec.", "__tests__")

COMMENT_PREFIXES = ("//", "/*", "*")


def collect_files(
    root: str | Path,
    extensions: Optional[Collection[str]] = None,
    exclude_dirs: Optional[set[str]] = None,
) -> list[Path]:
    """Recursively list files under a directory.

    Args:
        root: Directory to walk.
        extensions: File extensions to include (default: SOURCE_EXTENSIONS).
            An empty collection includes every file.
        exclude_dirs: Additional directory names to skip.

    Returns:
        Paths sorted lexicographically. A missing root yields an empty list.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    exts = SOURCE_EXTENSIONS if extensions is None else {e.lower() for e in extensions}
    skip = DEFAULT_SKIP_DIRS | exclude_dirs if exclude_dirs else DEFAULT_SKIP_DIRS

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip and not d.startswith("."))
        for fname in filenames:
            fpath = Path(dirpath) / fname
            if exts and fpath.suffix.lower() not in exts:
                continue
            if fpath.is_file():
                files.append(fpath)

    return sorted(files)


def read_file_text(path: str | Path) -> Optional[str]:
    """Read a source file, returning None if it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            return f.read()
    except (IOError, OSError) as e:
        logger.debug(f"Skipping unreadable file {path}: {e}")
        return None


def get_display_path(file_path: Path, base_path: Path) -> str:
    """Get a forward-slash path relative to ``base_path`` when possible."""
    try:
        return file_path.relative_to(base_path).as_posix()
    except ValueError:
        return file_path.as_posix()


def is_comment_line(line: str) -> bool:
    return line.strip().startswith(COMMENT_PREFIXES)


@dataclass(frozen=True)
class SourceFile:
    """A source file read once per run, with its suppression markers."""

    path: Path
    relative_path: str
    display_path: str
    content: str
    lines: tuple[str, ...]
    line_markers: dict[int, str] = field(default_factory=dict)
    file_markers: tuple[FileMarker, ...] = ()

    @classmethod
    def from_text(cls, path: Path, relative_path: str, display_path: str, content: str) -> "SourceFile":
        lines = tuple(line.rstrip("\r") for line in content.split("\n"))
        line_markers, file_markers = extract_markers(lines)
        return cls(
            path=path,
            relative_path=relative_path,
            display_path=display_path,
            content=content,
            lines=lines,
            line_markers=line_markers,
            file_markers=file_markers,
        )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def suffix(self) -> str:
        return self.path.suffix.lower()

    @property
    def is_test(self) -> bool:
        return any(indicator in self.relative_path for indicator in TEST_INDICATORS)

    @property
    def is_client_component(self) -> bool:
        return '"use client"' in self.content or "'use client'" in self.content

    def line(self, number: int) -> str:
        """Return the 1-based line ``number`` or an empty string."""
        if 1 <= number <= len(self.lines):
            return self.lines[number - 1]
        return ""

    def numbered_lines(self) -> Iterable[tuple[int, str]]:
        return enumerate(self.lines, start=1)

    def first_line_matching(self, *patterns: re.Pattern, default: int = 1) -> int:
        """Line number of the first line matching any pattern."""
        for number, line in self.numbered_lines():
            if any(p.search(line) for p in patterns):
                return number
        return default

    def contains_any(self, *needles: str) -> bool:
        return any(needle in self.content for needle in needles)


class SourceIndex:
    """Per-run, read-only cache of the subject source tree.

    Every file is read exactly once; checks query subsets by path prefix.
    """

    def __init__(self, source_root: Path, project_root: Path, files: Iterable[SourceFile]):
        self.source_root = source_root
        self.project_root = project_root
        self._files: dict[str, SourceFile] = {f.relative_path: f for f in files}

    @classmethod
    def load(
        cls,
        source_root: str | Path,
        project_root: Optional[str | Path] = None,
        extensions: Optional[Collection[str]] = None,
    ) -> "SourceIndex":
        source_root = Path(source_root)
        project_root = Path(project_root) if project_root else source_root

        files: list[SourceFile] = []
        for path in collect_files(source_root, extensions):
            content = read_file_text(path)
            if content is None:
                continue
            files.append(SourceFile.from_text(
                path=path,
                relative_path=get_display_path(path, source_root),
                display_path=get_display_path(path, project_root),
                content=content,
            ))

        logger.debug(f"Indexed {len(files)} source files under {source_root}")
        return cls(source_root, project_root, files)

    def __len__(self) -> int:
        return len(self._files)

    def get(self, relative_path: str) -> Optional[SourceFile]:
        return self._files.get(relative_path)

    def is_dir(self, relative_path: str) -> bool:
        return (self.source_root / relative_path).is_dir()

    def display_path(self, relative_path: str) -> str:
        return get_display_path(self.source_root / relative_path, self.project_root)

    def files_under(
        self,
        *prefixes: str,
        extensions: Optional[Collection[str]] = None,
        include_tests: bool = False,
    ) -> list[SourceFile]:
        """Files below any of the given directories (relative to the source root).

        With no prefixes every indexed file is returned. Order is the
        order of ``prefixes``, then lexicographic within each.
        """
        selected: list[SourceFile] = []
        seen: set[str] = set()
        for prefix in prefixes or ("",):
            prefix = prefix.strip("/")
            for rel, source in self._files.items():
                if prefix and not rel.startswith(prefix + "/"):
                    continue
                if rel in seen:
                    continue
                if extensions is not None and source.suffix not in extensions:
                    continue
                if not include_tests and source.is_test:
                    continue
                seen.add(rel)
                selected.append(source)
        return selected
