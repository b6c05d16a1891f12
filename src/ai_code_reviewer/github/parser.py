"""
Unified Diff Parser

Parses unified diff text (as served by the GitHub diff media type or
``git diff``) into structured files, hunks and numbered lines.
Keeps each file's patch text verbatim for diff-position mapping.
"""

import re
import logging
from typing import List, Optional, Tuple

from ..models.diff import DEV_NULL, DiffLine, FileDiff, Hunk, LineKind, UnifiedDiff


logger = logging.getLogger(__name__)


class DiffParseError(ValueError):
    """Raised when a single file section of a diff cannot be parsed."""


class _FileSection:
    """Raw lines belonging to one file of a multi-file diff."""

    def __init__(self, git_header: Optional[str] = None):
        self.git_header = git_header
        self.header_lines: List[str] = []
        self.patch_lines: List[str] = []

    @property
    def has_hunks(self) -> bool:
        return bool(self.patch_lines)


class UnifiedDiffParser:
    """
    Parser for unified diff text.

    Splits a multi-file diff into per-file sections, then each section
    into hunks. A file whose hunks are malformed is logged and skipped;
    the parser never raises for bad input.
    """

    def __init__(self):
        """Initialize unified diff parser."""
        self.hunk_header_pattern = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$')
        self.git_header_pattern = re.compile(r'^diff --git (?:a/)?(.+?) (?:b/)?(.+)$')
        self.binary_file_pattern = re.compile(r'^Binary files? .* differ')

    def parse(self, diff_text: Optional[str]) -> UnifiedDiff:
        """
        Parse unified diff text into a UnifiedDiff.

        Args:
            diff_text: Raw unified diff text

        Returns:
            UnifiedDiff with one FileDiff per parsable file section
        """
        if not diff_text or not diff_text.strip():
            logger.info("Empty diff, nothing to parse")
            return UnifiedDiff()

        lines = diff_text.split('\n')
        if lines and lines[-1] == '':
            lines.pop()

        files = []
        for section in self._split_sections(lines):
            try:
                files.append(self._build_file_diff(section))
            except DiffParseError as e:
                logger.warning(f"Skipping unparsable file section {section.git_header or '<unknown>'}: {e}")

        logger.info(f"Parsed diff: {len(files)} files")
        return UnifiedDiff(files=tuple(files))

    def parse_patch(self, patch: str, from_path: str, to_path: str) -> FileDiff:
        """
        Parse a single file patch (GitHub ``patch`` field, hunks only).

        Raises:
            DiffParseError: If the hunks are malformed
        """
        section = _FileSection()
        section.patch_lines = patch.split('\n') if patch else []
        section.header_lines = [f"--- {from_path}", f"+++ {to_path}"]
        return self._build_file_diff(section)

    def _split_sections(self, lines: List[str]) -> List[_FileSection]:
        """Split diff lines into per-file sections using hunk line counts."""
        sections: List[_FileSection] = []
        current: Optional[_FileSection] = None
        remaining_old = remaining_new = 0

        for index, line in enumerate(lines):
            if remaining_old > 0 or remaining_new > 0:
                if line.startswith('-'):
                    remaining_old -= 1
                    current.patch_lines.append(line)
                    continue
                if line.startswith('+'):
                    remaining_new -= 1
                    current.patch_lines.append(line)
                    continue
                if line.startswith(' ') or line == '':
                    remaining_old -= 1
                    remaining_new -= 1
                    current.patch_lines.append(line)
                    continue
                if line.startswith('\\'):
                    current.patch_lines.append(line)
                    continue
                # Hunk ended early; let the validation of this section catch it
                remaining_old = remaining_new = 0

            if line.startswith('diff --git '):
                current = _FileSection(git_header=line)
                sections.append(current)
                continue

            next_line = lines[index + 1] if index + 1 < len(lines) else ''
            if line.startswith('--- ') and next_line.startswith('+++ '):
                if current is None or current.has_hunks:
                    current = _FileSection()
                    sections.append(current)
                current.header_lines.append(line)
                continue

            header_match = self.hunk_header_pattern.match(line)
            if header_match and current is not None:
                remaining_old = int(header_match.group(2) or 1)
                remaining_new = int(header_match.group(4) or 1)
                current.patch_lines.append(line)
                continue

            if current is None:
                logger.debug(f"Ignoring line outside any file section: {line[:80]}")
                continue

            if current.has_hunks:
                # "\ No newline at end of file" after the last hunk line
                current.patch_lines.append(line)
            else:
                current.header_lines.append(line)

        return sections

    def _build_file_diff(self, section: _FileSection) -> FileDiff:
        """Build a FileDiff from a raw file section."""
        from_path, to_path = self._resolve_paths(section)
        logger.debug(f"Parsing file diff: {from_path} -> {to_path}")

        if any(self.binary_file_pattern.match(line) for line in section.header_lines):
            logger.debug(f"Binary file diff, no hunks: {to_path}")
            return FileDiff(from_path=from_path, to_path=to_path)

        hunks = self._parse_hunks(section.patch_lines)
        return FileDiff(
            from_path=from_path,
            to_path=to_path,
            hunks=tuple(hunks),
            raw_patch='\n'.join(section.patch_lines),
        )

    def _resolve_paths(self, section: _FileSection) -> Tuple[str, str]:
        """Resolve old and new paths from ---/+++ lines, falling back to the git header."""
        from_path = to_path = None

        for line in section.header_lines:
            if line.startswith('--- '):
                from_path = self._strip_path(line[4:], 'a/')
            elif line.startswith('+++ '):
                to_path = self._strip_path(line[4:], 'b/')
            elif line.startswith('rename from ') and from_path is None:
                from_path = line[len('rename from '):]
            elif line.startswith('rename to ') and to_path is None:
                to_path = line[len('rename to '):]

        if (from_path is None or to_path is None) and section.git_header:
            match = self.git_header_pattern.match(section.git_header)
            if match:
                from_path = from_path or match.group(1)
                to_path = to_path or match.group(2)

        if from_path is None or to_path is None:
            raise DiffParseError("missing file header")

        if any(line.startswith('deleted file mode') for line in section.header_lines):
            to_path = DEV_NULL
        elif any(line.startswith('new file mode') for line in section.header_lines):
            from_path = DEV_NULL

        return from_path, to_path

    def _strip_path(self, raw_path: str, prefix: str) -> str:
        """Strip a/ b/ prefixes and trailing timestamps from a header path."""
        path = raw_path.split('\t', 1)[0].strip()
        if path == DEV_NULL:
            return DEV_NULL
        if path.startswith(prefix):
            path = path[len(prefix):]
        return path

    def _parse_hunks(self, patch_lines: List[str]) -> List[Hunk]:
        """
        Parse patch lines into hunks with numbered lines.

        Raises:
            DiffParseError: If a hunk body disagrees with its header
        """
        hunks: List[Hunk] = []
        index = 0

        while index < len(patch_lines):
            header = patch_lines[index]
            header_match = self.hunk_header_pattern.match(header)
            if not header_match:
                raise DiffParseError(f"expected hunk header, got: {header[:80]}")

            old_start = int(header_match.group(1))
            old_lines = int(header_match.group(2) or 1)
            new_start = int(header_match.group(3))
            new_lines = int(header_match.group(4) or 1)

            old_line, new_line = old_start, new_start
            changes: List[DiffLine] = []
            index += 1

            while index < len(patch_lines) and not self.hunk_header_pattern.match(patch_lines[index]):
                line = patch_lines[index]
                if line.startswith('+'):
                    changes.append(DiffLine(LineKind.ADDED, line[1:], new_line_number=new_line))
                    new_line += 1
                elif line.startswith('-'):
                    changes.append(DiffLine(LineKind.REMOVED, line[1:], old_line_number=old_line))
                    old_line += 1
                elif line.startswith('\\'):
                    changes.append(DiffLine(LineKind.NOTE, line[1:]))
                elif line.startswith(' ') or line == '':
                    changes.append(DiffLine(
                        LineKind.CONTEXT,
                        line[1:],
                        old_line_number=old_line,
                        new_line_number=new_line,
                    ))
                    old_line += 1
                    new_line += 1
                else:
                    raise DiffParseError(f"unexpected line in hunk: {line[:80]}")
                index += 1

            if old_line - old_start != old_lines or new_line - new_start != new_lines:
                raise DiffParseError(
                    f"hunk {header.strip()} declares -{old_lines}/+{new_lines} lines, "
                    f"found -{old_line - old_start}/+{new_line - new_start}"
                )

            hunks.append(Hunk(
                old_start=old_start,
                old_lines=old_lines,
                new_start=new_start,
                new_lines=new_lines,
                header=header,
                changes=tuple(changes),
            ))

        logger.debug(f"Parsed {len(hunks)} hunks")
        return hunks
