"""
Review Annotation

This module provides path filtering, diff position mapping,
comment assembly and new-commit detection.
"""

from .filter import PathFilter
from .positions import DiffPositionMapper, map_line_to_position
from .assembler import CommentAssembler, FallbackPolicy
from .commits import CommitPolicy, build_commit_policy

__all__ = [
    'PathFilter',
    'DiffPositionMapper',
    'map_line_to_position',
    'CommentAssembler',
    'FallbackPolicy',
    'CommitPolicy',
    'build_commit_policy',
]
