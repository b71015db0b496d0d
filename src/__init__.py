# src/__init__.py - v1
"""nuggetwise: governed multi-stage prompt-to-UI pipeline."""

from nuggetwise.version import __version__

__all__ = ["__version__"]
