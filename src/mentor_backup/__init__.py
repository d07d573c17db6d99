"""Versioned backup and restore for the mentor tracking app."""

__version__ = "1.0.0"
