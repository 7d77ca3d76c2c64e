"""Presentation layers that drive the engine."""
