"""Data layer utilities for loading story definitions."""

from .errors import DataLoadError, DataValidationError, StoryValidationError
from .paths import get_definitions_path, resolve_story_path

__all__ = [
    "DataLoadError",
    "DataValidationError",
    "StoryValidationError",
    "get_definitions_path",
    "resolve_story_path",
]
