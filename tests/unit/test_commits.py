"""
Unit tests for new-commit policies.
"""

from unittest.mock import Mock

import pytest

from ai_code_reviewer.github.client import GitHubAPIError
from ai_code_reviewer.models.commit import CommitContext, CommitRef, OpenChangeRequest
from ai_code_reviewer.review.commits import (
    AllCommitsPolicy,
    BranchComparisonPolicy,
    CommitDataError,
    CrossRequestPolicy,
    ReviewerScopedPolicy,
    build_commit_policy,
)


def commits(*shas):
    return tuple(CommitRef(sha=sha, message=f"commit {sha}") for sha in shas)


def context(number, shas, head_branch="feature"):
    return CommitContext(
        owner="octo",
        repo_name="shop",
        change_request_number=number,
        commits=commits(*shas) if isinstance(shas[0], str) else tuple(shas),
        head_branch=head_branch,
        base_branch="main",
    )


class FakeBranchRepository:
    """Compare endpoint over in-memory branch histories."""

    def __init__(self, branches):
        self.branches = branches

    def compare_commits(self, owner, repo, base, head):
        base_shas = {commit.sha for commit in self.branches[base]}
        return [commit for commit in self.branches[head] if commit.sha not in base_shas]


class TestAllCommitsPolicy:
    def test_every_commit_is_new(self):
        assert AllCommitsPolicy().compute_new_commits(context(1, ["a", "b"])) == list(commits("a", "b"))


class TestCrossRequestPolicy:
    """Unit tests for CrossRequestPolicy class."""

    def setup_method(self):
        self.client = Mock()
        self.client.list_open_change_requests.return_value = [
            OpenChangeRequest(number=1, commits=commits("A", "X")),
            OpenChangeRequest(number=2, commits=commits("B", "X")),
        ]
        self.policy = CrossRequestPolicy(self.client)

    def test_shared_commits_excluded(self):
        """Test a commit shared by two open pull requests is new for neither."""
        assert [c.sha for c in self.policy.compute_new_commits(context(1, ["A", "X"]))] == ["A"]
        assert [c.sha for c in self.policy.compute_new_commits(context(2, ["B", "X"]))] == ["B"]

    def test_own_pull_request_ignored(self):
        self.client.list_open_change_requests.return_value = [
            OpenChangeRequest(number=1, commits=commits("A", "X")),
        ]

        assert [c.sha for c in self.policy.compute_new_commits(context(1, ["A", "X"]))] == ["A", "X"]

    def test_preserves_order(self):
        result = self.policy.compute_new_commits(context(3, ["Z", "X", "Y", "A"]))

        assert [c.sha for c in result] == ["Z", "Y"]

    def test_all_shared_yields_empty(self):
        assert self.policy.compute_new_commits(context(3, ["X"])) == []

    def test_api_failure_raises_commit_data_error(self):
        self.client.list_open_change_requests.side_effect = GitHubAPIError("boom", status_code=500)

        with pytest.raises(CommitDataError):
            self.policy.compute_new_commits(context(1, ["A"]))


class TestReviewerScopedPolicy:
    """Unit tests for ReviewerScopedPolicy class."""

    def setup_method(self):
        self.client = Mock()
        self.client.list_open_change_requests.return_value = [
            OpenChangeRequest(number=1, commits=commits("A", "X")),
            OpenChangeRequest(number=2, commits=commits("X", "Y")),
            OpenChangeRequest(number=3, commits=commits("Z")),
        ]
        reviews = {
            2: [{"user": {"login": "Octo-Reviewer"}, "state": "COMMENTED"}],
            3: [{"user": {"login": "someone-else"}, "state": "APPROVED"}],
        }
        self.client.list_reviews.side_effect = lambda owner, repo, number: reviews.get(number, [])

    def test_only_reviewed_pull_requests_excluded(self):
        """Test commits of pull requests the reviewer has not reviewed stay new."""
        policy = ReviewerScopedPolicy(self.client, "octo-reviewer")

        result = policy.compute_new_commits(context(1, ["A", "X", "Z"]))

        assert [c.sha for c in result] == ["A", "Z"]

    def test_reviewer_required(self):
        with pytest.raises(ValueError):
            ReviewerScopedPolicy(self.client, "")

    def test_review_fetch_failure(self):
        self.client.list_reviews.side_effect = GitHubAPIError("forbidden", status_code=403)

        with pytest.raises(CommitDataError):
            ReviewerScopedPolicy(self.client, "octo-reviewer").compute_new_commits(context(1, ["A"]))


class TestBranchComparisonPolicy:
    """Unit tests for BranchComparisonPolicy class."""

    def setup_method(self):
        base = [CommitRef("A", "init"), CommitRef("B", "second"), CommitRef("C", "third")]
        self.feature = base + [
            CommitRef("D", "Merge branch 'testing' into feature\n\nConflicts resolved"),
            CommitRef("E", "Add checkout flow"),
        ]
        self.client = FakeBranchRepository({"testing": base, "feature": self.feature})

    def test_base_merges_excluded(self):
        """Test only work unique to the head branch is new."""
        policy = BranchComparisonPolicy(self.client, "testing")

        result = policy.compute_new_commits(context(5, self.feature))

        assert [c.sha for c in result] == ["E"]

    def test_base_merges_kept_when_disabled(self):
        policy = BranchComparisonPolicy(self.client, "testing", exclude_base_merges=False)

        result = policy.compute_new_commits(context(5, self.feature))

        assert [c.sha for c in result] == ["D", "E"]

    @pytest.mark.parametrize("message,expected", [
        ("Merge branch 'testing' into feature", True),
        ("Merge branch 'testing'", True),
        ("Merge remote-tracking branch 'origin/testing' into feature", True),
        ("Merge branch 'testing-2' into feature", False),
        ("Merge branch 'other' into feature", False),
        ("Merge pull request #4 from octo/testing", False),
        ("Fix merge branch 'testing' bug", False),
    ])
    def test_is_base_merge(self, message, expected):
        policy = BranchComparisonPolicy(self.client, "testing")

        assert policy.is_base_merge(CommitRef("f00", message)) is expected

    def test_result_follows_pull_request_order(self):
        client = Mock()
        client.compare_commits.return_value = [CommitRef("E"), CommitRef("D2")]
        policy = BranchComparisonPolicy(client, "main")

        result = policy.compute_new_commits(context(5, ["D2", "E"]))

        assert [c.sha for c in result] == ["D2", "E"]
        client.compare_commits.assert_called_once_with("octo", "shop", "main", "feature")

    def test_unknown_head_branch(self):
        policy = BranchComparisonPolicy(Mock(), "main")

        with pytest.raises(CommitDataError):
            policy.compute_new_commits(context(5, ["A"], head_branch=None))

    def test_compare_failure(self):
        client = Mock()
        client.compare_commits.side_effect = GitHubAPIError("Not Found", status_code=404)

        with pytest.raises(CommitDataError):
            BranchComparisonPolicy(client, "main").compute_new_commits(context(5, ["A"]))


class TestBuildCommitPolicy:
    """Unit tests for build_commit_policy."""

    def test_builds_each_policy(self):
        client = Mock()

        assert isinstance(build_commit_policy("none"), AllCommitsPolicy)
        assert isinstance(build_commit_policy("cross_request", client), CrossRequestPolicy)
        assert isinstance(build_commit_policy("reviewer_scoped", client, reviewer="bot"), ReviewerScopedPolicy)
        assert isinstance(
            build_commit_policy("branch_comparison", client, base_branch="main"),
            BranchComparisonPolicy,
        )

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            build_commit_policy("newest_only", Mock())

    def test_client_required(self):
        with pytest.raises(ValueError):
            build_commit_policy("cross_request")
