"""
Unit tests for GitHub event resolution.
"""

import json

import pytest

from ai_code_reviewer.github.event import (
    DiffSource,
    MissingContextError,
    PullRequestEvent,
    load_event_payload,
    resolve_event,
)


def pull_request_payload(action="opened", number=7, **extra):
    payload = {
        "action": action,
        "pull_request": {"number": number},
        "repository": {"name": "shop", "owner": {"login": "octo"}},
    }
    payload.update(extra)
    return payload


class TestResolveEvent:
    """Unit tests for resolve_event."""

    def test_opened_pull_request(self):
        event = resolve_event(
            environ={"GITHUB_EVENT_NAME": "pull_request"},
            payload=pull_request_payload(),
        )

        assert event == PullRequestEvent(
            owner="octo", repo="shop", pull_number=7, event_name="pull_request", action="opened"
        )
        assert event.repository == "octo/shop"
        assert event.diff_source == DiffSource.PULL_REQUEST

    def test_synchronize_uses_compare_range(self):
        event = resolve_event(
            environ={"GITHUB_EVENT_NAME": "pull_request"},
            payload=pull_request_payload("synchronize", before="abc", after="def"),
        )

        assert (event.before, event.after) == ("abc", "def")
        assert event.diff_source == DiffSource.COMPARE

    def test_unsupported_action(self):
        event = resolve_event(environ={"GITHUB_EVENT_NAME": "pull_request"}, payload=pull_request_payload("closed"))

        assert event.diff_source == DiffSource.UNSUPPORTED

    def test_synchronize_without_range_is_unsupported(self):
        event = resolve_event(environ={}, payload=pull_request_payload("synchronize"))

        assert event.diff_source == DiffSource.UNSUPPORTED

    def test_workflow_dispatch_input(self):
        """Test manual dispatches read the pull number from inputs."""
        payload = {"inputs": {"pull_number": "12"}, "repository": {"name": "shop", "owner": {"login": "octo"}}}

        event = resolve_event(environ={"GITHUB_EVENT_NAME": "workflow_dispatch"}, payload=payload)

        assert event.pull_number == 12
        assert event.diff_source == DiffSource.PULL_REQUEST

    def test_falls_back_to_configured_number_and_repository(self):
        event = resolve_event(
            environ={"GITHUB_REPOSITORY": "octo/shop", "GITHUB_EVENT_NAME": "workflow_dispatch"},
            pull_number=5,
            payload={},
        )

        assert (event.owner, event.repo, event.pull_number) == ("octo", "shop", 5)

    def test_missing_pull_number(self):
        with pytest.raises(MissingContextError):
            resolve_event(environ={"GITHUB_REPOSITORY": "octo/shop"}, payload={})

    def test_missing_repository(self):
        with pytest.raises(MissingContextError):
            resolve_event(environ={}, pull_number=5, payload={})

    def test_malformed_repository(self):
        with pytest.raises(MissingContextError):
            resolve_event(environ={"GITHUB_REPOSITORY": "octo"}, pull_number=5, payload={})

    def test_reads_event_path(self, tmp_path):
        event_file = tmp_path / "event.json"
        event_file.write_text(json.dumps(pull_request_payload(number=21)), encoding="utf-8")

        event = resolve_event(environ={"GITHUB_EVENT_PATH": str(event_file)})

        assert event.pull_number == 21


class TestLoadEventPayload:
    def test_missing_path(self, tmp_path):
        assert load_event_payload(None) == {}
        assert load_event_payload(str(tmp_path / "absent.json")) == {}
