#!/usr/bin/env python3
"""
AI Code Reviewer Server

Simple Flask server that triggers the review pipeline over HTTP,
for setups that run reviews from a webhook instead of GitHub Actions.
"""

import asyncio

from flask import Flask, request, jsonify

from ai_code_reviewer.api import AIReviewerAPI, ReviewRequest
from ai_code_reviewer.config import ConfigManager
from ai_code_reviewer.github.client import GitHubAPIError
from ai_code_reviewer.github.event import PullRequestEvent
from ai_code_reviewer.review.commits import CommitDataError


def create_app(reviewer_api: AIReviewerAPI) -> Flask:
    app = Flask(__name__)

    @app.route('/api/v1/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'service': 'ai-code-reviewer',
            'version': '1.0.0'
        })

    @app.route('/api/v1/reviews/generate', methods=['POST'])
    def generate_review():
        """Generate and submit a pull request review."""
        data = request.get_json(silent=True) or {}

        repository = data.get('repository', '')
        owner, _, repo = repository.partition('/')
        if not owner or not repo or not data.get('pr_number'):
            return jsonify({
                'error': "'repository' (owner/repo) and 'pr_number' are required",
                'status': 'failed'
            }), 400

        event = PullRequestEvent(
            owner=owner,
            repo=repo,
            pull_number=int(data['pr_number']),
            event_name=data.get('event', 'workflow_dispatch'),
            action=data.get('action'),
            before=data.get('before'),
            after=data.get('after'),
        )

        try:
            result = asyncio.run(reviewer_api.generate_review(
                ReviewRequest(event=event, dry_run=bool(data.get('dry_run', False)))
            ))
        except (GitHubAPIError, CommitDataError) as e:
            return jsonify({
                'error': str(e),
                'status': 'failed'
            }), 502

        return jsonify({
            'review_id': result.review_id,
            'status': result.status,
            'reason': result.reason,
            'repository': result.repository,
            'pr_number': result.pr_number,
            'total_comments': len(result.comments),
            'submitted': result.submitted,
            'processing_time': result.processing_time
        })

    return app


if __name__ == '__main__':
    manager = ConfigManager()
    app = create_app(AIReviewerAPI(manager.config))

    print("Starting AI Code Reviewer Server...")
    print("Server will be available at: http://localhost:8000")
    print("   - Health Check: GET /api/v1/health")
    print("   - Generate Review: POST /api/v1/reviews/generate")

    app.run(
        host='0.0.0.0',
        port=8000,
        debug=False
    )
