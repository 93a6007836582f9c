"""Sync installed extensions between VS Code family editors."""

__version__ = "0.1.0"
