"""Domain model: story definitions, the validated graph and game state."""
