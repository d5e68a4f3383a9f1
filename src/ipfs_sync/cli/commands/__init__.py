"""Command module exports."""

from . import sync

__all__ = ["sync"]
