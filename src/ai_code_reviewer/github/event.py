"""
GitHub Event Resolution

Resolves the pull request to review from the GitHub Actions environment:
the event payload, action inputs and ``GITHUB_REPOSITORY``.
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


logger = logging.getLogger(__name__)


class MissingContextError(Exception):
    """Repository or pull request identity cannot be determined."""


class DiffSource(Enum):
    """Where the diff under review comes from."""
    PULL_REQUEST = "pull_request"
    COMPARE = "compare"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class PullRequestEvent:
    """Resolved pull request identity plus event details."""
    owner: str
    repo: str
    pull_number: int
    event_name: Optional[str] = None
    action: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def diff_source(self) -> DiffSource:
        """
        Decide the diff to review.

        Newly opened pull requests and manual dispatches review the whole
        pull request; pushes to an open pull request review only the pushed
        range.
        """
        if self.action == "opened" or self.event_name == "workflow_dispatch":
            return DiffSource.PULL_REQUEST
        if self.action == "synchronize" and self.before and self.after:
            return DiffSource.COMPARE
        return DiffSource.UNSUPPORTED


def load_event_payload(event_path: Optional[str]) -> Dict[str, Any]:
    """Read the event payload JSON, or an empty dict when unavailable."""
    if not event_path:
        return {}

    path = Path(event_path)
    if not path.exists():
        logger.warning(f"Event payload not found: {event_path}")
        return {}

    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def resolve_event(
    environ: Optional[Mapping[str, str]] = None,
    pull_number: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None
) -> PullRequestEvent:
    """
    Resolve owner, repository and pull request number.

    Order: event payload, then the ``pull_number`` input, then
    ``GITHUB_REPOSITORY`` for owner and repository.

    Args:
        environ: Environment mapping (defaults to os.environ)
        pull_number: Configured pull request number fallback
        payload: Pre-loaded event payload

    Raises:
        MissingContextError: If any identity part is missing
    """
    environ = os.environ if environ is None else environ
    if payload is None:
        payload = load_event_payload(environ.get("GITHUB_EVENT_PATH"))

    number: Optional[int] = None
    owner: Optional[str] = None
    repo: Optional[str] = None

    repository = payload.get("repository") or {}
    if payload.get("pull_request"):
        number = payload["pull_request"].get("number")
        owner = (repository.get("owner") or {}).get("login")
        repo = repository.get("name")
    elif (payload.get("inputs") or {}).get("pull_number"):
        raw_number = str(payload["inputs"]["pull_number"]).strip()
        number = int(raw_number) if raw_number.isdigit() else None
        owner = (repository.get("owner") or {}).get("login")
        repo = repository.get("name")

    if not number:
        number = pull_number
        if not number:
            raise MissingContextError("pull_number input is required but not provided")

    if not owner or not repo:
        github_repository = environ.get("GITHUB_REPOSITORY")
        if not github_repository:
            raise MissingContextError("GITHUB_REPOSITORY is not defined")
        owner, _, repo = github_repository.partition("/")

    if not owner or not repo:
        raise MissingContextError("Unable to determine repository owner and name")

    event = PullRequestEvent(
        owner=owner,
        repo=repo,
        pull_number=int(number),
        event_name=environ.get("GITHUB_EVENT_NAME"),
        action=payload.get("action"),
        before=payload.get("before"),
        after=payload.get("after"),
    )
    logger.info(f"Repository details: owner={owner}, repo={repo}, pull_number={event.pull_number}")
    return event
