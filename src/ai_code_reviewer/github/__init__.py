"""
GitHub Integration Layer

This module provides GitHub API integration, unified diff parsing
and GitHub Actions event resolution.
"""

from .client import GitHubClient, GitHubAPIError, RateLimitExceeded
from .parser import UnifiedDiffParser
from .event import PullRequestEvent, resolve_event

__all__ = [
    'GitHubClient',
    'GitHubAPIError',
    'RateLimitExceeded',
    'UnifiedDiffParser',
    'PullRequestEvent',
    'resolve_event',
]
