"""Reelforge: short-form video export backend."""

__version__ = "0.1.0"
