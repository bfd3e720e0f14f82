"""Detect implicit inputs and outputs in PHP functions and methods."""

__version__ = "0.1.0"
