"""Localization helpers for game data: tree diffing and interactive JSON translation."""

__version__ = "0.1.0"
