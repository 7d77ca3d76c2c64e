"""Custom exceptions for story loading and validation."""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from eshara.services.story_graph_validator import Issue


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when JSON files are missing or invalid."""


class DataValidationError(DataError):
    """Raised when JSON content fails structural validation."""


class StoryValidationError(DataError):
    """Raised when a story document has one or more graph defects.

    Every defect found is carried on ``issues`` so authors can fix a story
    file in a single pass.
    """

    def __init__(self, issues: Sequence["Issue"]) -> None:
        from eshara.services.story_graph_validator import format_issue

        self.issues = list(issues)
        lines = "\n".join(format_issue(issue) for issue in self.issues)
        super().__init__(f"Story document has {len(self.issues)} defect(s):\n{lines}")
