"""Shared helpers."""

from .cache import ReadThroughCache

__all__ = ["ReadThroughCache"]
