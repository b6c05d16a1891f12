"""
Unit Reviewer

Sends every hunk of every in-scope file to the language model and turns
the structured replies into findings. Failures stay local to the hunk.
"""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import ValidationError

from ..models.diff import FileDiff, Hunk
from ..models.review import Finding, ParsedFindings, ParseFailure, ParseOutcome, ReviewTarget, ModelReply
from ..review.positions import coerce_line_number
from .backends import GenerationConfig, LanguageModel, LanguageModelError
from .prompts import PromptBuilder


logger = logging.getLogger(__name__)


OUTER_FENCE_PATTERN = re.compile(r"\A```(?:json)?[ \t]*\n?(.*?)\n?[ \t]*```\Z", re.DOTALL)


@dataclass
class HunkReview:
    """Outcome of reviewing a single hunk."""
    file_path: str
    hunk_header: str
    outcome: ParseOutcome

    @property
    def findings(self) -> List[Finding]:
        return self.outcome.findings

    @property
    def failed(self) -> bool:
        return not self.outcome.ok


def strip_code_fences(reply: str) -> str:
    """
    Unwrap a reply enclosed in a markdown code fence (with or without a
    json tag). Fences inside the reply, such as code suggestions in a
    review comment, are left intact.
    """
    stripped = reply.strip()
    match = OUTER_FENCE_PATTERN.match(stripped)
    return match.group(1).strip() if match else stripped


class UnitReviewer:
    """
    Reviews hunks with a language model.

    Each hunk gets its own request with fixed decoding settings; the reply
    must be ``{"reviews": [{"lineNumber": ..., "reviewComment": ...}]}``.
    """

    def __init__(
        self,
        model: LanguageModel,
        generation_config: Optional[GenerationConfig] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        max_workers: int = 1
    ):
        """
        Initialize unit reviewer.

        Args:
            model: Language model collaborator
            generation_config: Decoding settings (low temperature by default)
            prompt_builder: Builder for review requests
            max_workers: Hunks reviewed concurrently (1 = sequential)
        """
        self.model = model
        self.generation_config = generation_config or GenerationConfig()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_workers = max(1, max_workers)

    def review_files(self, files: Sequence[FileDiff], target: ReviewTarget) -> List[HunkReview]:
        """
        Review every hunk of the given files.

        Args:
            files: In-scope file diffs
            target: Pull request context

        Returns:
            One HunkReview per hunk, in file then hunk order
        """
        units = [(file_diff, hunk) for file_diff in files for hunk in file_diff.hunks]
        logger.info(f"Reviewing {len(units)} hunks in {len(files)} files")

        if self.max_workers == 1 or len(units) <= 1:
            reviews = [self._review_unit(file_diff, hunk, target) for file_diff, hunk in units]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                reviews = list(executor.map(lambda unit: self._review_unit(unit[0], unit[1], target), units))

        failed = sum(1 for review in reviews if review.failed)
        found = sum(len(review.findings) for review in reviews)
        logger.info(f"Generated {found} findings from {len(reviews)} hunks ({failed} failed)")
        return reviews

    def _review_unit(self, file_diff: FileDiff, hunk: Hunk, target: ReviewTarget) -> HunkReview:
        try:
            return self.review_hunk(file_diff, hunk, target)
        except Exception as e:
            logger.error(f"Failed to review hunk {hunk.header} of {file_diff.to_path}: {e}")
            return HunkReview(file_diff.to_path, hunk.header, ParseFailure(reason=f"review failed: {e}"))

    def review_hunk(self, file_diff: FileDiff, hunk: Hunk, target: ReviewTarget) -> HunkReview:
        """
        Review a single hunk.

        Returns:
            HunkReview whose outcome is ParsedFindings or ParseFailure
        """
        file_path = file_diff.to_path
        prompt = self.prompt_builder.build_review_prompt(file_path, hunk, target)

        try:
            reply = self.model.complete(prompt, self.generation_config)
        except LanguageModelError as e:
            logger.error(f"Error getting AI response for {file_path} {hunk.header}: {e}")
            return HunkReview(file_path, hunk.header, ParseFailure(reason=str(e)))

        outcome = self.parse_reply(reply, file_path)
        if not outcome.ok:
            logger.warning(f"Unusable AI response for {file_path} {hunk.header}: {outcome.reason}")
        return HunkReview(file_path, hunk.header, outcome)

    def parse_reply(self, reply: Optional[str], file_path: str) -> ParseOutcome:
        """
        Parse a model reply into findings for one file.

        Args:
            reply: Raw reply text, possibly wrapped in code fences
            file_path: File the findings belong to

        Returns:
            ParsedFindings (possibly empty) or ParseFailure
        """
        if reply is None or not reply.strip():
            return ParseFailure(reason="empty reply", raw_reply=reply or "")

        cleaned = strip_code_fences(reply)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            return ParseFailure(reason=f"invalid JSON: {e}", raw_reply=reply)

        if not isinstance(data, dict) or "reviews" not in data:
            return ParseFailure(reason="reply has no 'reviews' field", raw_reply=reply)

        try:
            parsed = ModelReply.model_validate(data)
        except ValidationError as e:
            return ParseFailure(reason=f"unexpected reply shape: {e.error_count()} errors", raw_reply=reply)

        findings = []
        for item in parsed.reviews:
            if not item.reviewComment:
                logger.debug(f"Skipping empty review comment for {file_path}")
                continue
            target_line = coerce_line_number(item.lineNumber)
            if target_line is None:
                logger.warning(f"Model returned invalid line number {item.lineNumber!r} for {file_path}")
            findings.append(Finding(file_path=file_path, target_line=target_line, comment_body=item.reviewComment))

        return ParsedFindings(findings=findings)
