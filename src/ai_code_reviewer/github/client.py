"""
GitHub API Client

Handles GitHub API authentication, rate limiting, and communication.
Provides the pull request, commit, comparison and review operations
the review pipeline depends on.
"""

import time
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..models.commit import CommitRef, OpenChangeRequest
from ..models.review import AnchoredComment


logger = logging.getLogger(__name__)


DIFF_MEDIA_TYPE = 'application/vnd.github.v3.diff'


class GitHubAPIError(Exception):
    """GitHub API related errors"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class RateLimitExceeded(GitHubAPIError):
    """GitHub API rate limit exceeded"""
    def __init__(self, reset_time: datetime):
        super().__init__(f"Rate limit exceeded. Resets at {reset_time}", status_code=429)
        self.reset_time = reset_time


class GitHubClient:
    """
    GitHub API client with authentication, rate limiting, and error handling.

    Provides methods for:
    - Pull request metadata, diff text and per-file patches
    - Commit listing and branch comparison
    - Review submission
    """

    def __init__(self, token: str, base_url: str = "https://api.github.com", timeout: int = 30):
        """
        Initialize GitHub client.

        Args:
            token: GitHub access token
            base_url: GitHub API base URL (default: https://api.github.com)
            timeout: Request timeout in seconds
        """
        if not token:
            raise ValueError("GitHub token is required")

        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = self._create_session()
        self.rate_limit_remaining = 5000
        self.rate_limit_reset = datetime.now()

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy and authentication."""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'AI-Code-Reviewer/1.0'
        })

        return session

    def _check_rate_limit(self) -> None:
        """Check and handle GitHub API rate limits."""
        if self.rate_limit_remaining <= 10 and datetime.now() < self.rate_limit_reset:
            wait_time = (self.rate_limit_reset - datetime.now()).total_seconds()
            if wait_time > 0:
                logger.warning(f"Rate limit low ({self.rate_limit_remaining}), resets in {wait_time:.1f}s")
                raise RateLimitExceeded(self.rate_limit_reset)

    def _update_rate_limit(self, response: requests.Response) -> None:
        """Update rate limit information from response headers."""
        if 'X-RateLimit-Remaining' in response.headers:
            self.rate_limit_remaining = int(response.headers['X-RateLimit-Remaining'])

        if 'X-RateLimit-Reset' in response.headers:
            reset_timestamp = int(response.headers['X-RateLimit-Reset'])
            self.rate_limit_reset = datetime.fromtimestamp(reset_timestamp)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make authenticated request to GitHub API with rate limiting.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            GitHubAPIError: For API errors
            RateLimitExceeded: When rate limit is exceeded
        """
        self._check_rate_limit()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise GitHubAPIError(f"Request failed: {str(e)}")

        self._update_rate_limit(response)

        if response.status_code == 429 or (
            response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0'
        ):
            reset_time = datetime.fromtimestamp(int(response.headers.get('X-RateLimit-Reset', time.time() + 3600)))
            raise RateLimitExceeded(reset_time)

        if not response.ok:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} - {error_data.get('message', 'Unknown error')}",
                status_code=response.status_code,
                response_data=error_data
            )

        return response

    def _get_paginated(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict]:
        """Collect every page of a list endpoint."""
        items = []
        page = 1
        per_page = 100

        while True:
            page_params = dict(params or {})
            page_params.update({'page': page, 'per_page': per_page})
            response = self._make_request('GET', endpoint, params=page_params)

            page_items = response.json()
            if not page_items:
                break

            items.extend(page_items)

            if len(page_items) < per_page:
                break

            page += 1

        return items

    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict:
        """
        Get pull request information.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            Pull request data
        """
        logger.info(f"Fetching PR {owner}/{repo}#{pr_number}")

        response = self._make_request('GET', f'/repos/{owner}/{repo}/pulls/{pr_number}')
        return response.json()

    def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        """
        Get the unified diff text of a pull request.

        Returns:
            Raw diff text
        """
        logger.info(f"Fetching diff for {owner}/{repo}#{pr_number}")

        response = self._make_request(
            'GET',
            f'/repos/{owner}/{repo}/pulls/{pr_number}',
            headers={'Accept': DIFF_MEDIA_TYPE}
        )
        return response.text

    def get_pull_request_files(self, owner: str, repo: str, pr_number: int) -> List[Dict]:
        """
        Get files changed in a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            List of file change data
        """
        logger.info(f"Fetching PR files for {owner}/{repo}#{pr_number}")

        files = self._get_paginated(f'/repos/{owner}/{repo}/pulls/{pr_number}/files')

        logger.info(f"Found {len(files)} changed files")
        return files

    def get_file_patches(self, owner: str, repo: str, pr_number: int) -> Dict[str, str]:
        """
        Get the per-file patch text GitHub uses for review positions.

        Returns:
            Mapping of file path to patch text (files without a patch are omitted)
        """
        return {
            file_data['filename']: file_data['patch']
            for file_data in self.get_pull_request_files(owner, repo, pr_number)
            if file_data.get('patch')
        }

    def list_commits(self, owner: str, repo: str, pr_number: int) -> List[CommitRef]:
        """
        List the commits of a pull request in history order.

        Returns:
            Ordered list of CommitRef
        """
        logger.info(f"Fetching commits for {owner}/{repo}#{pr_number}")

        commits = self._get_paginated(f'/repos/{owner}/{repo}/pulls/{pr_number}/commits')
        return [self._to_commit_ref(commit) for commit in commits]

    def list_open_pull_requests(self, owner: str, repo: str) -> List[Dict]:
        """List open pull requests of a repository."""
        logger.info(f"Fetching open pull requests for {owner}/{repo}")

        return self._get_paginated(f'/repos/{owner}/{repo}/pulls', params={'state': 'open'})

    def list_open_change_requests(self, owner: str, repo: str) -> List[OpenChangeRequest]:
        """
        List open pull requests together with their commits.

        Returns:
            OpenChangeRequest per open pull request
        """
        change_requests = []
        for pr_data in self.list_open_pull_requests(owner, repo):
            number = pr_data['number']
            commits = self.list_commits(owner, repo, number)
            change_requests.append(OpenChangeRequest(number=number, commits=tuple(commits)))
        return change_requests

    def list_reviews(self, owner: str, repo: str, pr_number: int) -> List[Dict]:
        """List submitted reviews of a pull request."""
        logger.debug(f"Fetching reviews for {owner}/{repo}#{pr_number}")

        return self._get_paginated(f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews')

    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> List[CommitRef]:
        """
        List the commits reachable from head but not from base.

        Args:
            base: Base branch or commit sha
            head: Head branch or commit sha

        Returns:
            Ordered list of CommitRef in the comparison range
        """
        logger.info(f"Comparing commits {base}...{head} in {owner}/{repo}")

        response = self._make_request('GET', f'/repos/{owner}/{repo}/compare/{base}...{head}')
        return [self._to_commit_ref(commit) for commit in response.json().get('commits', [])]

    def compare_diff(self, owner: str, repo: str, base: str, head: str) -> str:
        """
        Get the unified diff between two branches or commits.

        Returns:
            Raw diff text
        """
        logger.info(f"Fetching comparison diff {base}...{head} in {owner}/{repo}")

        response = self._make_request(
            'GET',
            f'/repos/{owner}/{repo}/compare/{base}...{head}',
            headers={'Accept': DIFF_MEDIA_TYPE}
        )
        return response.text

    def submit_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comments: List[AnchoredComment],
        body: Optional[str] = None
    ) -> Dict:
        """
        Submit a COMMENT review carrying all comments in one request.

        Args:
            comments: Assembled review comments

        Returns:
            Created review data
        """
        logger.info(f"Submitting review with {len(comments)} comments to {owner}/{repo}#{pr_number}")

        payload: Dict[str, Any] = {
            'event': 'COMMENT',
            'comments': [comment.to_github_payload() for comment in comments],
        }
        if body:
            payload['body'] = body

        response = self._make_request('POST', f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews', json=payload)
        logger.info("Review comments submitted successfully")
        return response.json()

    def _to_commit_ref(self, commit_data: Dict) -> CommitRef:
        return CommitRef(
            sha=commit_data['sha'],
            message=(commit_data.get('commit') or {}).get('message', ''),
        )
