"""
Data Models

AI Code Reviewer 시스템의 핵심 데이터 모델들
"""

from .diff import UnifiedDiff, FileDiff, Hunk, DiffLine, LineKind, DEV_NULL
from .review import (
    ReviewTarget,
    Finding,
    AnchoredComment,
    ParsedFindings,
    ParseFailure,
    ModelReply,
)
from .commit import CommitRef, OpenChangeRequest, CommitContext

__all__ = [
    "UnifiedDiff",
    "FileDiff",
    "Hunk",
    "DiffLine",
    "LineKind",
    "DEV_NULL",
    "ReviewTarget",
    "Finding",
    "AnchoredComment",
    "ParsedFindings",
    "ParseFailure",
    "ModelReply",
    "CommitRef",
    "OpenChangeRequest",
    "CommitContext",
]
