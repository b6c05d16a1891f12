"""
Main AI Reviewer API

Main interface that orchestrates the complete review process
from pull request diff retrieval to the submitted review comments.
"""

import logging
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from dataclasses import dataclass, field

from .config import AppConfig
from .github.client import GitHubAPIError, GitHubClient
from .github.event import DiffSource, PullRequestEvent
from .github.parser import DiffParseError, UnifiedDiffParser
from .llm.backends import GenerationConfig, LanguageModel, build_language_model
from .llm.generator import HunkReview, UnitReviewer
from .llm.prompts import PromptBuilder
from .models.commit import CommitContext, CommitRef
from .models.diff import FileDiff
from .models.review import AnchoredComment, ReviewTarget
from .review.assembler import CommentAssembler, FallbackPolicy
from .review.commits import CommitDataError, CommitPolicy, build_commit_policy
from .review.filter import PathFilter
from .review.positions import DiffPositionMapper


logger = logging.getLogger(__name__)


@dataclass
class ReviewRequest:
    """Request for pull request review generation."""
    event: PullRequestEvent
    dry_run: bool = False


@dataclass
class ReviewResult:
    """Result of pull request review generation."""
    review_id: str
    repository: str
    pr_number: int
    status: str  # 'completed' or 'no_op'
    comments: List[AnchoredComment]
    processing_time: float
    metadata: Dict
    created_at: datetime
    submitted: bool = False
    reason: Optional[str] = None
    new_commits: List[CommitRef] = field(default_factory=list)


class AIReviewerAPI:
    """
    Main AI Reviewer API interface.

    Orchestrates the complete review process:
    1. Resolve the pull request and decide which commits are new
    2. Fetch, parse and filter the diff
    3. Review every hunk with the language model
    4. Anchor findings to diff positions and submit one review
    """

    def __init__(
        self,
        config: AppConfig,
        github_client: Optional[GitHubClient] = None,
        language_model: Optional[LanguageModel] = None,
        commit_policy: Optional[CommitPolicy] = None
    ):
        """
        Initialize AI Reviewer API.

        Args:
            config: Validated application configuration
            github_client: Source control host client (built from config if omitted)
            language_model: Language model backend (built from config if omitted)
            commit_policy: New-commit policy (built from config if omitted)
        """
        self.config = config

        logger.info("Initializing AI Reviewer API components...")

        self.github_client = github_client or GitHubClient(
            token=config.github.token,
            base_url=config.github.api_base_url,
            timeout=config.github.timeout_seconds
        )

        self.diff_parser = UnifiedDiffParser()
        self.path_filter = PathFilter(config.review.include_patterns)

        model = language_model or build_language_model(
            provider=config.model.provider,
            model_name=config.model.model_name,
            api_key=config.model.api_key
        )
        self.unit_reviewer = UnitReviewer(
            model=model,
            generation_config=GenerationConfig(
                max_tokens=config.model.max_tokens,
                temperature=config.model.temperature,
                top_p=config.model.top_p,
                frequency_penalty=config.model.frequency_penalty,
                presence_penalty=config.model.presence_penalty,
            ),
            prompt_builder=PromptBuilder(config.review.system_instructions),
            max_workers=config.review.max_concurrency
        )

        self.commit_policy = commit_policy or build_commit_policy(
            policy=config.commits.policy,
            client=self.github_client,
            base_branch=config.commits.base_branch,
            reviewer=config.commits.reviewer,
            exclude_base_merges=config.commits.exclude_base_merges
        )
        self.fallback_policy = FallbackPolicy(config.review.fallback_policy)

        logger.info("AI Reviewer API initialized successfully")

    async def generate_review(self, request: ReviewRequest) -> ReviewResult:
        """
        Generate and submit the review for one pull request.

        Args:
            request: ReviewRequest with the resolved event

        Returns:
            ReviewResult with the assembled comments

        Raises:
            GitHubAPIError: If pull request data or the diff cannot be fetched
            CommitDataError: If new commits cannot be determined
        """
        start_time = datetime.now()
        event = request.event
        review_id = f"{event.repository}_{event.pull_number}_{int(start_time.timestamp())}"
        metadata: Dict = {'event': event.event_name, 'action': event.action}

        logger.info(f"Starting review generation: {review_id}")

        def finish(status: str, comments=None, reason=None, submitted=False, new_commits=None) -> ReviewResult:
            processing_time = (datetime.now() - start_time).total_seconds()
            if reason:
                logger.info(f"{reason} ({review_id})")
            return ReviewResult(
                review_id=review_id,
                repository=event.repository,
                pr_number=event.pull_number,
                status=status,
                comments=comments or [],
                processing_time=processing_time,
                metadata=metadata,
                created_at=start_time,
                submitted=submitted,
                reason=reason,
                new_commits=new_commits or [],
            )

        if event.diff_source == DiffSource.UNSUPPORTED:
            return finish('no_op', reason=f"Unsupported event: {event.event_name} {event.action or ''}".strip())

        # Step 1: Pull request context and new commits
        target, pr_data = self._fetch_target(event)
        new_commits = self._compute_new_commits(event, pr_data)
        metadata['new_commits'] = [commit.sha for commit in new_commits]
        if not new_commits:
            return finish('no_op', reason="No new commits to review")

        # Step 2: Diff retrieval, parsing and filtering
        diff_text = self._fetch_diff(event)
        if not diff_text:
            return finish('no_op', reason="No diff found", new_commits=new_commits)

        diff = self.diff_parser.parse(diff_text)
        files = self.path_filter.filter_files(diff)
        metadata['diff_stats'] = {
            'files_parsed': len(diff),
            'files_in_scope': len(files),
            'include_patterns': self.path_filter.patterns,
        }
        if not files:
            return finish('no_op', reason="No files matched the include patterns", new_commits=new_commits)

        # Step 3: Per-hunk model review
        hunk_reviews = self.unit_reviewer.review_files(files, target)
        findings = [finding for review in hunk_reviews for finding in review.findings]
        metadata['analysis_stats'] = self._analysis_stats(hunk_reviews, findings)
        if not findings:
            return finish('no_op', reason="No comments generated", new_commits=new_commits)

        # Step 4: Anchoring and submission
        assembler = CommentAssembler(self._build_mapper(event, files), self.fallback_policy)
        comments = assembler.assemble(findings)
        metadata['comment_stats'] = {
            'anchored': assembler.anchored_count,
            'fallback': assembler.fallback_count,
        }

        submitted = False
        if request.dry_run:
            logger.info(f"Dry run, not submitting {len(comments)} comments")
        else:
            submitted = assembler.submit(
                comments,
                lambda batch: self.github_client.submit_review(event.owner, event.repo, event.pull_number, batch)
            )

        result = finish('completed', comments=comments, submitted=submitted, new_commits=new_commits)
        logger.info(f"Review generation completed: {review_id} ({result.processing_time:.2f}s)")
        return result

    def _fetch_target(self, event: PullRequestEvent) -> Tuple[ReviewTarget, Dict]:
        """Fetch pull request details into a ReviewTarget."""
        pr_data = self.github_client.get_pull_request(event.owner, event.repo, event.pull_number)
        target = ReviewTarget(
            owner=event.owner,
            repo_name=event.repo,
            change_request_number=event.pull_number,
            title=pr_data.get('title') or "",
            description=pr_data.get('body') or "",
        )
        return target, pr_data

    def _compute_new_commits(self, event: PullRequestEvent, pr_data: Dict) -> List[CommitRef]:
        """Run the commit policy over the pull request's commits."""
        try:
            commits = self.github_client.list_commits(event.owner, event.repo, event.pull_number)
        except GitHubAPIError as e:
            raise CommitDataError(f"Failed to fetch commits of PR #{event.pull_number}: {e}") from e

        head = pr_data.get('head') or {}
        context = CommitContext(
            owner=event.owner,
            repo_name=event.repo,
            change_request_number=event.pull_number,
            commits=tuple(commits),
            head_branch=head.get('label') or head.get('ref'),
            base_branch=(pr_data.get('base') or {}).get('ref'),
        )
        new_commits = self.commit_policy.compute_new_commits(context)
        logger.info(f"{len(new_commits)} of {len(commits)} commits are new ({self.commit_policy.name} policy)")
        return new_commits

    def _fetch_diff(self, event: PullRequestEvent) -> str:
        """Fetch the diff text for the event."""
        if event.diff_source == DiffSource.COMPARE:
            logger.info("Fetching diff for synchronized event...")
            return self.github_client.compare_diff(event.owner, event.repo, event.before, event.after)
        return self.github_client.get_pull_request_diff(event.owner, event.repo, event.pull_number)

    def _build_mapper(self, event: PullRequestEvent, files: List[FileDiff]) -> DiffPositionMapper:
        """
        Collect the patch text positions are counted against.

        GitHub counts positions over the pull request's own per-file patches,
        which differ from a compare diff after a push; parsed patches fill in
        files the files endpoint does not return or returns malformed.
        """
        mapper = DiffPositionMapper()
        try:
            for path, patch in self.github_client.get_file_patches(event.owner, event.repo, event.pull_number).items():
                try:
                    self.diff_parser.parse_patch(patch.rstrip('\n'), path, path)
                except DiffParseError as e:
                    logger.warning(f"Ignoring malformed patch for {path}: {e}")
                    continue
                mapper.add_patch(path, patch)
        except GitHubAPIError as e:
            logger.warning(f"Could not fetch pull request file patches, using parsed diff: {e}")

        for file_diff in files:
            if file_diff.raw_patch:
                mapper.add_patch(file_diff.to_path, file_diff.raw_patch)
        return mapper

    def _analysis_stats(self, hunk_reviews: List[HunkReview], findings: List) -> Dict:
        return {
            'hunks_reviewed': len(hunk_reviews),
            'hunk_failures': sum(1 for review in hunk_reviews if review.failed),
            'findings': len(findings),
            'llm_model': self.unit_reviewer.model.model_name,
        }
