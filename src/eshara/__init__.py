"""Data-driven interactive fiction engine."""

__version__ = "0.1.0"
