"""
Prompt Builder

Builds the per-hunk review request sent to the language model:
behavioral instructions, pull request context and the numbered hunk.
"""

import logging
from typing import List, Optional, Sequence

from ..models.diff import Hunk, LineKind
from ..models.review import ReviewTarget


logger = logging.getLogger(__name__)


DEFAULT_INSTRUCTIONS = [
    'Provide the response in the following JSON format:  {"reviews": [{"lineNumber":  <line_number>, "reviewComment": "<review comment>"}]}',
    "NEVER talk about comments in the code or adding comments. (IMPORTANT)",
    "Do not give positive comments or compliments.",
    "Assume any variable you come across is defined, initialized and used correctly. (IMPORTANT)",
    "Assume any function you come across is defined, works and used correctly. (IMPORTANT)",
    "If code is removed, assume it was necessary to remove it unless you have reference to the full context and don't comment on it.",
    "Don't comment on renaming variable names, function names, or parameter names, unless they are completely incorrect.",
    "Don't comment on checking for null or undefined unless it is completely incorrect.",
    "Don't comment on formatting.",
    "Don't comment about checking for zero or invalid values.",
    "Remember to be aware of up to date coding practices.",
    'Provide suggestions ONLY if there is something to improve, and provide reasons for it, otherwise "reviews" should be an empty array.',
    "Always try to provide code examples or snippets to support your suggestions.",
    "Context is important, so make sure to provide suggestions based on the context of the code and not to invent new context.",
    "If there is no context, assume it is a part of a valid function or method.",
    "Ensure you differentiate between code in different files.",
    "If provide code suggestions, if they are single line wrap them in single backticks, if they are multi-line wrap them in triple backticks on separate lines.",
    "If you do not know the context of the code, you can assume it is a part of a function or method, and you can assume the function signature or variable type is correct.",
    "Write the comment in GitHub Markdown format.",
    "Use the given description only for the overall context and only comment the code.",
    "IMPORTANT: Provide JSON without wrapping it in code blocks.",
]


class PromptBuilder:
    """
    Builds review prompts for single hunks.

    The pull request title and description are included for context only;
    the instructions tell the model to review the code alone.
    """

    def __init__(self, instructions: Optional[Sequence[str]] = None):
        """
        Initialize prompt builder.

        Args:
            instructions: Behavioral constraints for the model (defaults to DEFAULT_INSTRUCTIONS)
        """
        self.instructions: List[str] = list(instructions) if instructions else list(DEFAULT_INSTRUCTIONS)

    def build_review_prompt(self, file_path: str, hunk: Hunk, target: ReviewTarget) -> str:
        """
        Build the review request for one hunk.

        Args:
            file_path: Path of the file the hunk belongs to
            hunk: Hunk to review
            target: Pull request context

        Returns:
            Complete prompt string
        """
        logger.debug(f"Building review prompt for {file_path} {hunk.header}")

        instructions = "\n".join(f"- {line}" for line in self.instructions)

        return f"""Your task is to review pull requests. Instructions:
{instructions}

Review the following code diff in the file "{file_path}" and take the pull request title and description into account when writing the response.

Pull request title: {target.title}
Pull request description:

---
{target.description}
---

Git diff to review:

```diff
{self.format_hunk(hunk)}
```
"""

    def format_hunk(self, hunk: Hunk) -> str:
        """
        Render a hunk with a line number in front of every line.

        Added and context lines carry their new-file number, removed lines
        their old-file number.
        """
        lines = [hunk.header]
        for change in hunk.changes:
            if change.kind == LineKind.NOTE:
                lines.append(change.raw)
            else:
                lines.append(f"{change.line_number} {change.raw}")
        return "\n".join(lines)
