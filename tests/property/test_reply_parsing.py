"""
Property-based tests for model reply parsing.

Property: fence wrapping never changes the parse, and every finding
carries a positive line number or none at all.
"""

import json
from unittest.mock import Mock

from hypothesis import given, strategies as st

from ai_code_reviewer.llm.backends import LanguageModel
from ai_code_reviewer.llm.generator import UnitReviewer


line_numbers = st.one_of(
    st.none(),
    st.integers(min_value=-50, max_value=5000),
    st.integers(min_value=-5, max_value=500).map(str),
    st.text(alphabet="abcxyz -", max_size=8),
)

comment_text = st.text(alphabet="abcdefghij .,`\n", min_size=0, max_size=40)

comment_bodies = st.one_of(
    comment_text,
    st.builds(
        lambda lead, lang, code: f"{lead}\n```{lang}\n{code}\n```",
        comment_text,
        st.sampled_from(["", "json", "python", "ts"]),
        comment_text,
    ),
)

review_items = st.lists(
    st.fixed_dictionaries({
        "lineNumber": line_numbers,
        "reviewComment": comment_bodies,
    }),
    max_size=10,
)


class TestReplyParsingProperties:
    """Property tests for UnitReviewer.parse_reply."""

    def setup_method(self):
        self.reviewer = UnitReviewer(model=Mock(spec=LanguageModel))

    @given(items=review_items, tag=st.sampled_from(["```json", "```"]))
    def test_fenced_and_bare_replies_agree(self, items, tag):
        """
        Property: Code fences are transparent.

        Given: A well-formed reply
        When: It is parsed bare and wrapped in a code fence
        Then: Both parses are equal
        """
        reply = json.dumps({"reviews": items})

        assert self.reviewer.parse_reply(f"{tag}\n{reply}\n```", "f.ts") == self.reviewer.parse_reply(reply, "f.ts")

    @given(items=review_items)
    def test_findings_have_valid_lines(self, items):
        outcome = self.reviewer.parse_reply(json.dumps({"reviews": items}), "f.ts")

        assert outcome.ok
        assert len(outcome.findings) == sum(1 for item in items if item["reviewComment"].strip())
        for finding in outcome.findings:
            assert finding.target_line is None or finding.target_line > 0
            assert finding.comment_body == finding.comment_body.strip()

    @given(items=review_items, tag=st.sampled_from(["```json", "```"]))
    def test_comment_bodies_survive_fence_unwrapping(self, items, tag):
        """
        Property: Fences inside review comments are preserved.

        Given: Comments that may carry their own code fences
        When: The reply is wrapped in an outer fence and parsed
        Then: Every comment body comes back unchanged apart from trimming
        """
        payload = json.dumps({"reviews": items})
        reply = f"{tag}\n{payload}\n```"

        outcome = self.reviewer.parse_reply(reply, "f.ts")

        expected = [item["reviewComment"].strip() for item in items if item["reviewComment"].strip()]
        assert [finding.comment_body for finding in outcome.findings] == expected
