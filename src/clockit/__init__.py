"""Clockit: export completed work sessions to external destinations."""

__version__ = "0.3.0"

__all__ = ["__version__"]
