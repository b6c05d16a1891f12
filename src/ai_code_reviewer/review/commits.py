"""
Commit Deduplicator

Decides which commits of a pull request are new for review purposes.
Each policy implements a single ``compute_new_commits`` method so the
pipeline can swap policies without changing callers.
"""

import re
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set

from ..github.client import GitHubAPIError, GitHubClient
from ..models.commit import CommitContext, CommitRef


logger = logging.getLogger(__name__)


class CommitDataError(Exception):
    """Comparison data for commit deduplication could not be retrieved."""


def _in_pr_order(context: CommitContext, keep: Set[str]) -> List[CommitRef]:
    """Filter the pull request's own commit list, keeping its order."""
    return [commit for commit in context.commits if commit.sha in keep]


def _excluding(context: CommitContext, excluded: Set[str]) -> List[CommitRef]:
    return [commit for commit in context.commits if commit.sha not in excluded]


class CommitPolicy(ABC):
    """Strategy computing the new commits of a pull request."""

    name = "base"

    @abstractmethod
    def compute_new_commits(self, context: CommitContext) -> List[CommitRef]:
        """
        Compute the new commits of a pull request.

        Args:
            context: Pull request identity and its own commit list

        Returns:
            New commits, in the pull request's commit order

        Raises:
            CommitDataError: If comparison data cannot be retrieved
        """


class AllCommitsPolicy(CommitPolicy):
    """Every commit of the pull request is new."""

    name = "none"

    def compute_new_commits(self, context: CommitContext) -> List[CommitRef]:
        return list(context.commits)


class CrossRequestPolicy(CommitPolicy):
    """
    A commit is new unless it also belongs to another open pull request
    of the same repository.
    """

    name = "cross_request"

    def __init__(self, client: GitHubClient):
        self.client = client

    def compute_new_commits(self, context: CommitContext) -> List[CommitRef]:
        logger.info(f"Computing unique commits for PR #{context.change_request_number}")

        try:
            open_requests = self.client.list_open_change_requests(context.owner, context.repo_name)
        except GitHubAPIError as e:
            raise CommitDataError(f"Failed to fetch open pull requests: {e}") from e

        other_shas: Set[str] = set()
        for change_request in open_requests:
            if change_request.number != context.change_request_number:
                other_shas |= change_request.shas

        unique = _excluding(context, other_shas)
        logger.info(f"Found {len(unique)} of {len(context.commits)} commits not shared with other open PRs")
        return unique


class ReviewerScopedPolicy(CommitPolicy):
    """
    A commit is new unless it belongs to another open pull request that
    the configured reviewer has already reviewed.
    """

    name = "reviewer_scoped"

    def __init__(self, client: GitHubClient, reviewer: str):
        if not reviewer:
            raise ValueError("Reviewer login is required for the reviewer_scoped policy")
        self.client = client
        self.reviewer = reviewer

    def compute_new_commits(self, context: CommitContext) -> List[CommitRef]:
        logger.info(f"Computing commits not yet reviewed by {self.reviewer} for PR #{context.change_request_number}")

        reviewed_shas: Set[str] = set()
        try:
            for change_request in self.client.list_open_change_requests(context.owner, context.repo_name):
                if change_request.number == context.change_request_number:
                    continue
                reviews = self.client.list_reviews(context.owner, context.repo_name, change_request.number)
                if self._reviewed_by(reviews):
                    reviewed_shas |= change_request.shas
        except GitHubAPIError as e:
            raise CommitDataError(f"Failed to fetch reviewed pull requests: {e}") from e

        return _excluding(context, reviewed_shas)

    def _reviewed_by(self, reviews: Iterable[dict]) -> bool:
        reviewer = self.reviewer.lower()
        return any(
            ((review.get('user') or {}).get('login') or '').lower() == reviewer
            for review in reviews
        )


class BranchComparisonPolicy(CommitPolicy):
    """
    The new commits are the comparison range from the base branch to the
    pull request's head branch, optionally without merges of the base
    branch into the head branch.
    """

    name = "branch_comparison"

    def __init__(self, client: GitHubClient, base_branch: str, exclude_base_merges: bool = True):
        if not base_branch:
            raise ValueError("Base branch is required for the branch_comparison policy")
        self.client = client
        self.base_branch = base_branch
        self.exclude_base_merges = exclude_base_merges
        branch = re.escape(base_branch)
        self.base_merge_pattern = re.compile(
            rf"^Merge (?:remote-tracking )?branch '(?:origin/)?{branch}'"
        )

    def compute_new_commits(self, context: CommitContext) -> List[CommitRef]:
        head = context.head_branch
        if not head:
            raise CommitDataError(f"Head branch of PR #{context.change_request_number} is unknown")

        logger.info(f"Comparing {self.base_branch}...{head} for PR #{context.change_request_number}")
        try:
            range_commits = self.client.compare_commits(context.owner, context.repo_name, self.base_branch, head)
        except GitHubAPIError as e:
            raise CommitDataError(f"Failed to compare {self.base_branch}...{head}: {e}") from e

        keep = {commit.sha for commit in range_commits if not self.is_base_merge(commit)}
        return _in_pr_order(context, keep)

    def is_base_merge(self, commit: CommitRef) -> bool:
        """Whether a commit merged the base branch into the head branch."""
        if not self.exclude_base_merges:
            return False
        if self.base_merge_pattern.match(commit.summary):
            logger.debug(f"Excluding base merge commit {commit.sha[:7]}: {commit.summary}")
            return True
        return False


def build_commit_policy(
    policy: str,
    client: Optional[GitHubClient] = None,
    base_branch: Optional[str] = None,
    reviewer: Optional[str] = None,
    exclude_base_merges: bool = True
) -> CommitPolicy:
    """
    Create the configured commit policy.

    Args:
        policy: One of none, cross_request, reviewer_scoped, branch_comparison
    """
    if policy == AllCommitsPolicy.name:
        return AllCommitsPolicy()
    if client is None:
        raise ValueError(f"Commit policy {policy} needs a GitHub client")
    if policy == CrossRequestPolicy.name:
        return CrossRequestPolicy(client)
    if policy == ReviewerScopedPolicy.name:
        return ReviewerScopedPolicy(client, reviewer)
    if policy == BranchComparisonPolicy.name:
        return BranchComparisonPolicy(client, base_branch, exclude_base_merges)
    raise ValueError(f"Unknown commit policy: {policy}")
