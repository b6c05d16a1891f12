"""
Unified Diff Data Models

Unified diff 파싱 결과를 표현하는 데이터 모델들
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


DEV_NULL = "/dev/null"


class LineKind(Enum):
    """Hunk 내부 라인 종류"""
    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"
    # "\ No newline at end of file" 표시 라인
    NOTE = "note"


_MARKERS = {
    LineKind.CONTEXT: " ",
    LineKind.ADDED: "+",
    LineKind.REMOVED: "-",
    LineKind.NOTE: "\\",
}


@dataclass(frozen=True)
class DiffLine:
    """Hunk의 개별 라인"""
    kind: LineKind
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    def __post_init__(self):
        """데이터 검증"""
        if self.kind == LineKind.ADDED and self.old_line_number is not None:
            raise ValueError("Added lines have no old line number")
        if self.kind == LineKind.REMOVED and self.new_line_number is not None:
            raise ValueError("Removed lines have no new line number")

    @property
    def raw(self) -> str:
        """패치 텍스트에 나타나는 그대로의 라인"""
        return f"{_MARKERS[self.kind]}{self.content}"

    @property
    def line_number(self) -> Optional[int]:
        """추가/컨텍스트 라인은 새 파일 번호, 삭제 라인은 기존 파일 번호"""
        if self.kind == LineKind.REMOVED:
            return self.old_line_number
        return self.new_line_number


@dataclass(frozen=True)
class Hunk:
    """파일 diff의 개별 hunk"""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    changes: Tuple[DiffLine, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """데이터 검증"""
        if self.old_start < 0 or self.new_start < 0:
            raise ValueError("Line numbers must be non-negative")
        if self.old_lines < 0 or self.new_lines < 0:
            raise ValueError("Line counts must be non-negative")

    @property
    def content(self) -> str:
        """헤더를 포함한 hunk 원문"""
        return "\n".join([self.header] + [line.raw for line in self.changes])

    @property
    def added_lines(self) -> List[DiffLine]:
        return [line for line in self.changes if line.kind == LineKind.ADDED]

    @property
    def removed_lines(self) -> List[DiffLine]:
        return [line for line in self.changes if line.kind == LineKind.REMOVED]


@dataclass(frozen=True)
class FileDiff:
    """파일 단위 diff"""
    from_path: str
    to_path: str
    hunks: Tuple[Hunk, ...] = field(default_factory=tuple)
    raw_patch: str = ""

    @property
    def is_deleted(self) -> bool:
        """삭제된 파일 여부"""
        return self.to_path == DEV_NULL

    @property
    def is_new(self) -> bool:
        """새로 추가된 파일 여부"""
        return self.from_path == DEV_NULL

    @property
    def path(self) -> str:
        """리뷰 대상 경로 (삭제된 파일은 기존 경로)"""
        return self.from_path if self.is_deleted else self.to_path

    @property
    def additions(self) -> int:
        return sum(len(hunk.added_lines) for hunk in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(len(hunk.removed_lines) for hunk in self.hunks)


@dataclass(frozen=True)
class UnifiedDiff:
    """Unified diff 전체"""
    files: Tuple[FileDiff, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[FileDiff]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def paths(self) -> List[str]:
        return [file_diff.path for file_diff in self.files]

    def get_file(self, path: str) -> Optional[FileDiff]:
        """경로로 파일 diff 조회"""
        for file_diff in self.files:
            if file_diff.to_path == path or file_diff.from_path == path:
                return file_diff
        return None
