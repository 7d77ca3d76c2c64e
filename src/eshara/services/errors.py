"""Service-layer exceptions."""


class StoryRuntimeError(Exception):
    """Raised when the graph misbehaves at runtime despite passing validation."""


class InvalidChoiceError(ValueError):
    """Raised when a choice is submitted that the current node does not offer."""


class SaveLoadError(Exception):
    """Raised when a save exists but cannot be decoded."""


class SaveWriteError(Exception):
    """Raised when the save artifact cannot be written."""
