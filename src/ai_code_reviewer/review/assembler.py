"""
Comment Assembler

Turns model findings into the final review comment batch, anchoring each
finding to a diff position where one exists and falling back to a
file-level comment where it does not.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from ..models.review import AnchoredComment, Finding
from .positions import DiffPositionMapper


logger = logging.getLogger(__name__)


class FallbackPolicy(Enum):
    """What to do with a finding whose line has no diff position."""
    FILE_LEVEL = "file_level"
    FIRST_LINE = "first_line"


class CommentAssembler:
    """
    Assembles AnchoredComment batches from findings.

    Discovery order of findings is preserved. Unmappable findings are never
    dropped: they become file-level comments, or under ``FIRST_LINE`` are
    pinned to position 1 of the file's patch.
    """

    def __init__(
        self,
        mapper: DiffPositionMapper,
        fallback_policy: FallbackPolicy = FallbackPolicy.FILE_LEVEL
    ):
        """
        Initialize comment assembler.

        Args:
            mapper: Position mapper holding the patch text of each file
            fallback_policy: Handling of findings that cannot be anchored
        """
        self.mapper = mapper
        self.fallback_policy = fallback_policy
        self.anchored_count = 0
        self.fallback_count = 0

    def assemble(self, findings: Iterable[Finding]) -> List[AnchoredComment]:
        """
        Build the comment batch for a set of findings.

        Args:
            findings: Findings in discovery order

        Returns:
            One AnchoredComment per finding, same order
        """
        comments = []
        self.anchored_count = 0
        self.fallback_count = 0

        for finding in findings:
            comment, resolved = self._anchor(finding)
            if resolved:
                self.anchored_count += 1
            else:
                self.fallback_count += 1
            comments.append(comment)

        logger.info(
            f"Assembled {len(comments)} comments "
            f"({self.anchored_count} anchored, {self.fallback_count} fallback)"
        )
        return comments

    def _anchor(self, finding: Finding) -> Tuple[AnchoredComment, bool]:
        """Resolve one finding into a comment; the flag is False for fallbacks."""
        position = self.mapper.position_for(finding.file_path, finding.target_line)

        if position is not None:
            logger.debug(
                f"Anchoring comment to {finding.file_path} line {finding.target_line} "
                f"at diff position {position}"
            )
            return AnchoredComment(
                file_path=finding.file_path,
                comment_body=finding.comment_body,
                diff_position=position,
                target_line=finding.target_line,
            ), True

        fallback_position = self._fallback_position(finding)
        logger.warning(
            f"Invalid or missing line number ({finding.target_line}) for comment on "
            f"{finding.file_path}, adding as "
            f"{'first-line' if fallback_position else 'file-level'} comment"
        )
        return AnchoredComment(
            file_path=finding.file_path,
            comment_body=finding.comment_body,
            diff_position=fallback_position,
            target_line=finding.target_line,
        ), False

    def _fallback_position(self, finding: Finding) -> Optional[int]:
        if self.fallback_policy == FallbackPolicy.FIRST_LINE and self.mapper.has_patch(finding.file_path):
            return 1
        return None

    def submit(
        self,
        comments: List[AnchoredComment],
        submitter: Callable[[List[AnchoredComment]], None]
    ) -> bool:
        """
        Hand the batch to the submitter in a single call.

        Returns:
            True if a submission was made, False for an empty batch
        """
        if not comments:
            logger.info("No valid comments to submit")
            return False

        logger.info(f"Submitting {len(comments)} review comments")
        submitter(comments)
        return True
