"""Repository exports."""

from .story_repo import StoryRepository, parse_story_document

__all__ = ["StoryRepository", "parse_story_document"]
