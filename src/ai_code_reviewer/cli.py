"""
Command Line Entry Point

Runs the review pipeline for the pull request described by the GitHub
Actions environment. Exit code 0 covers both submitted reviews and
clean no-op runs; fatal errors exit with 1.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .api import AIReviewerAPI, ReviewRequest
from .config import AppConfig, ConfigManager
from .github.client import GitHubAPIError
from .github.event import MissingContextError, resolve_event
from .review.commits import CommitDataError


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-code-reviewer",
        description="Review a pull request diff with a language model and post line comments.",
    )
    parser.add_argument("--config", help="YAML configuration file (defaults to environment / action inputs)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the assembled comments as JSON instead of submitting a review",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.from_yaml(args.config) if args.config else AppConfig.from_env()
        manager = ConfigManager(config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Starting AI Code Reviewer...")
    logger.info("GITHUB_TOKEN: [REDACTED]")
    logger.info(f"Model: {manager.config.model.provider}/{manager.config.model.model_name}")
    logger.info(f"Include patterns: {manager.config.review.include_patterns}")
    logger.debug(f"Configuration: {manager.config.to_dict()}")

    try:
        event = resolve_event(pull_number=manager.config.pull_number)
        api = AIReviewerAPI(manager.config)
        result = asyncio.run(api.generate_review(ReviewRequest(event=event, dry_run=args.dry_run)))
    except MissingContextError as e:
        logger.error(f"Error: {e}")
        return 1
    except CommitDataError as e:
        logger.error(f"Error determining new commits: {e}")
        return 1
    except GitHubAPIError as e:
        logger.error(f"GitHub API error: {e}")
        if e.status_code == 404:
            logger.error("Pull request or repository not found")
        return 1

    if args.dry_run:
        print(json.dumps([comment.to_github_payload() for comment in result.comments], indent=2))

    logger.info(f"Review {result.status}: {len(result.comments)} comments, submitted={result.submitted}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
