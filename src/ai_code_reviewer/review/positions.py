"""
Diff Position Mapper

GitHub's review comment API addresses a line by ``position``: the ordinal
of the line inside one file's patch text, counting every physical patch
line (hunk headers and removed lines included). This module maps
new-file line numbers onto that coordinate system.
"""

import re
import logging
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


HUNK_HEADER_PATTERN = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')


def coerce_line_number(value: Any) -> Optional[int]:
    """
    Convert a model-supplied line number into a positive int.

    Returns:
        The line number, or None for negative, zero or non-numeric values
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            number = int(stripped)
            return number if number > 0 else None
    return None


def map_line_to_position(raw_patch: Optional[str], target_line: Any) -> Optional[int]:
    """
    Map a new-file line number to its 1-based position in a file patch.

    Every patch line consumes one position. A hunk header re-synchronizes
    the new-file counter to the hunk's start line; every following line
    that is not a removal advances it by one. The first line at which the
    counter equals ``target_line`` is the answer.

    Args:
        raw_patch: Verbatim patch text for one file, starting at its first hunk header
        target_line: Line number in new-file coordinates

    Returns:
        The position, or None when the line never materializes in the patch
    """
    target = coerce_line_number(target_line)
    if target is None or not raw_patch:
        return None

    position = 0
    current_new_line = 0
    in_hunk = False

    for line in raw_patch.split('\n'):
        position += 1

        header_match = HUNK_HEADER_PATTERN.match(line)
        if header_match:
            current_new_line = int(header_match.group(3))
            in_hunk = True
        elif not in_hunk or line.startswith('-') or line.startswith('\\'):
            # Removed lines and "\ No newline" markers occupy no new-file line
            continue
        else:
            current_new_line += 1

        if current_new_line == target:
            return position

    return None


class DiffPositionMapper:
    """
    Maps new-file line numbers to diff positions for a set of file patches.

    Holds one patch text per file path; findings for paths without a
    patch never resolve.
    """

    def __init__(self, patches: Optional[Dict[str, str]] = None):
        """
        Initialize position mapper.

        Args:
            patches: Mapping of file path to verbatim patch text
        """
        self.patches: Dict[str, str] = dict(patches or {})

    def add_patch(self, file_path: str, raw_patch: str) -> None:
        """Register the patch text for a file (first registration wins)."""
        self.patches.setdefault(file_path, raw_patch)

    def has_patch(self, file_path: str) -> bool:
        return bool(self.patches.get(file_path))

    def position_for(self, file_path: str, target_line: Any) -> Optional[int]:
        """Resolve the diff position of a line in the given file."""
        raw_patch = self.patches.get(file_path)
        if not raw_patch:
            logger.debug(f"No patch text for {file_path}")
            return None
        return map_line_to_position(raw_patch, target_line)
