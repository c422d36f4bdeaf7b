"""Automated solver for interactive textbook activities."""

__version__ = "0.1.0"
