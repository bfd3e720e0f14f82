"""Syntax tree adapters."""
