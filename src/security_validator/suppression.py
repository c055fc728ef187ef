"""Security-ignore marker parsing and waiver resolution.

Two marker forms are recognised inside ``//`` or ``/* */`` comments
(the latter also covers JSX ``{/* ... */}``):

    // security-ignore: <reason>
        On the flagged line or the line directly above it.

    // security-ignore-file: <check|all> <reason>
        Within the first 10 lines of the file.

A reason is mandatory; a marker without one is not a waiver.
"""

import re
from typing import TYPE_CHECKING, NamedTuple, Optional

from .config import CATEGORY_SETTINGS
from .models import CheckCategory, Waiver, WaiverScope

if TYPE_CHECKING:
    from .scanners.common import SourceFile


FILE_MARKER_WINDOW = 10

LINE_MARKER_RE = re.compile(r"(?://|/\*)\s*security-ignore:\s*(\S.*)", re.IGNORECASE)

FILE_MARKER_RE = re.compile(
    r"(?://|/\*)\s*security-ignore-file:\s*([\w-]+)\s+(\S.*)",
    re.IGNORECASE,
)

_COMMENT_CLOSE_RE = re.compile(r"\s*\*/\s*\}?\s*$")

WILDCARD = "all"


class FileMarker(NamedTuple):
    """A file-level security-ignore marker."""

    line: int
    target: str
    reason: str


def _clean_reason(text: str) -> str:
    return _COMMENT_CLOSE_RE.sub("", text).strip()


def parse_line_marker(line: str) -> Optional[str]:
    """Return the reason of a line-level marker on ``line``, if any."""
    match = LINE_MARKER_RE.search(line)
    if not match:
        return None
    return _clean_reason(match.group(1)) or None


def parse_file_marker(line: str) -> Optional[tuple[str, str]]:
    """Return ``(target, reason)`` of a file-level marker on ``line``, if any."""
    match = FILE_MARKER_RE.search(line)
    if not match:
        return None
    reason = _clean_reason(match.group(2))
    if not reason:
        return None
    return match.group(1).lower(), reason


def extract_markers(lines: list[str] | tuple[str, ...]) -> tuple[dict[int, str], tuple[FileMarker, ...]]:
    """Pre-extract marker locations from a file's lines.

    Returns:
        A mapping of 1-based line number to line-marker reason, and the
        file-level markers found in the first ``FILE_MARKER_WINDOW`` lines.
    """
    line_markers: dict[int, str] = {}
    file_markers: list[FileMarker] = []
    for number, line in enumerate(lines, start=1):
        if "security-ignore" not in line:
            continue
        reason = parse_line_marker(line)
        if reason:
            line_markers[number] = reason
        if number <= FILE_MARKER_WINDOW:
            parsed = parse_file_marker(line)
            if parsed:
                file_markers.append(FileMarker(number, *parsed))
    return line_markers, tuple(file_markers)


def marker_matches(target: str, category: CheckCategory) -> bool:
    target = target.lower()
    if target == WILDCARD:
        return True
    aliases = CATEGORY_SETTINGS[category].waiver_names
    return target in aliases or target == category.value.lower()


class SuppressionResolver:
    """Decides whether a located finding has been waived."""

    def file_waiver(
        self,
        source: "SourceFile",
        category: CheckCategory,
        check_type: str,
    ) -> Optional[Waiver]:
        for marker in source.file_markers:
            if marker_matches(marker.target, category):
                return Waiver(
                    scope=WaiverScope.file,
                    category=category,
                    check_type=check_type,
                    file=source.display_path,
                    reason=marker.reason,
                )
        return None

    def line_waiver(
        self,
        source: "SourceFile",
        line: int,
        category: CheckCategory,
        check_type: str,
    ) -> Optional[Waiver]:
        reason = source.line_markers.get(line)
        if reason is None and line > 1:
            reason = source.line_markers.get(line - 1)
        if reason is None:
            return None
        return Waiver(
            scope=WaiverScope.line,
            category=category,
            check_type=check_type,
            file=source.display_path,
            line=line,
            reason=reason,
        )
