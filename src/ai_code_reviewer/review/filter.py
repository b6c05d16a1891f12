"""
Path Filter

Selects the files of a diff whose paths match the configured include
glob patterns. Deleted files are never in scope.

Patterns are matched one path segment at a time: ``*``, ``?`` and
``[...]`` stay inside a single directory, a ``**`` segment spans zero or
more directories, and ``{a,b}`` alternatives are expanded before
matching.
"""

import fnmatch
import logging
import posixpath
from typing import Iterable, List, Optional, Sequence, Union

from ..models.diff import FileDiff, UnifiedDiff


logger = logging.getLogger(__name__)


DEFAULT_INCLUDE_PATTERNS = "**/*.cs,**/*.yml"


def split_top_level(text: str, separator: str = ',') -> List[str]:
    """Split on a separator that is not nested inside braces."""
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch == '{':
            depth += 1
        elif ch == '}' and depth:
            depth -= 1
        if ch == separator and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(ch)
    parts.append(''.join(current))
    return parts


def expand_braces(pattern: str) -> List[str]:
    """
    Expand ``{a,b}`` alternatives into separate patterns.

    Groups nest; a group without a comma is kept literally.
    """
    depth = 0
    start = 0
    for index, ch in enumerate(pattern):
        if ch == '{':
            if depth == 0:
                start = index
            depth += 1
        elif ch == '}' and depth:
            depth -= 1
            if depth:
                continue
            options = split_top_level(pattern[start + 1:index])
            if len(options) < 2:
                continue
            prefix, suffix = pattern[:start], pattern[index + 1:]
            return [
                expanded
                for option in options
                for expanded in expand_braces(f"{prefix}{option}{suffix}")
            ]
    return [pattern]


def parse_patterns(raw_patterns: Optional[Union[str, Iterable[str]]]) -> List[str]:
    """
    Split a comma-separated pattern string into a clean pattern list.

    Entries are whitespace-trimmed and empty entries discarded; commas
    inside ``{...}`` belong to the pattern. An absent or blank value
    yields the default include patterns.
    """
    if raw_patterns is None:
        raw_patterns = ''
    if isinstance(raw_patterns, str):
        candidates = split_top_level(raw_patterns)
    else:
        candidates = list(raw_patterns)

    patterns = [p.strip() for p in candidates if p and p.strip()]
    if not patterns:
        logger.warning(f"No include patterns configured, using defaults: {DEFAULT_INCLUDE_PATTERNS}")
        patterns = DEFAULT_INCLUDE_PATTERNS.split(',')
    return patterns


def normalize_path(path: str) -> str:
    """Normalize separators and collapse ./.. segments into a relative posix path."""
    normalized = posixpath.normpath(path.replace('\\', '/'))
    normalized = normalized.lstrip('/')
    return '' if normalized == '.' else normalized


def _split_glob(pattern: str) -> List[str]:
    segments = [segment for segment in normalize_path(pattern).split('/') if segment]
    # "a/**/**/b" is the same as "a/**/b"
    collapsed: List[str] = []
    for segment in segments:
        if segment == '**' and collapsed and collapsed[-1] == '**':
            continue
        collapsed.append(segment)
    return collapsed


def _match_segments(path_parts: Sequence[str], glob_parts: Sequence[str]) -> bool:
    if not glob_parts:
        return not path_parts

    head, rest = glob_parts[0], glob_parts[1:]
    if head == '**':
        return any(_match_segments(path_parts[skip:], rest) for skip in range(len(path_parts) + 1))

    if not path_parts:
        return False
    return fnmatch.fnmatchcase(path_parts[0], head) and _match_segments(path_parts[1:], rest)


class PathFilter:
    """
    Include-pattern filter over diff files.

    A file is kept when its normalized target path matches at least one
    pattern. Matching is case-sensitive and dot-prefixed names are not
    treated specially.
    """

    def __init__(self, patterns: Optional[Union[str, Iterable[str]]] = None):
        """
        Initialize path filter.

        Args:
            patterns: Comma-separated string or iterable of glob patterns
        """
        self.patterns = parse_patterns(patterns)
        self._globs = [
            _split_glob(expanded)
            for pattern in self.patterns
            for expanded in expand_braces(pattern)
        ]

    def matches(self, path: str) -> bool:
        """Check whether a path matches any include pattern."""
        normalized = normalize_path(path)
        if not normalized:
            return False

        path_parts = normalized.split('/')
        return any(_match_segments(path_parts, glob_parts) for glob_parts in self._globs)

    def filter_files(self, diff: Union[UnifiedDiff, Iterable[FileDiff]]) -> List[FileDiff]:
        """
        Return the in-scope files, preserving diff order.

        Args:
            diff: UnifiedDiff or any iterable of FileDiff

        Returns:
            Files that are not deleted and match an include pattern
        """
        selected = []
        for file_diff in diff:
            if file_diff.is_deleted:
                logger.debug(f"Skipping deleted file: {file_diff.from_path}")
                continue
            if self.matches(file_diff.to_path):
                selected.append(file_diff)
            else:
                logger.debug(f"File does not match include patterns: {file_diff.to_path}")

        logger.info(f"Filtered to {len(selected)} files matching {self.patterns}")
        return selected
