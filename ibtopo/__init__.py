"""Parsed InfiniBand fabric log storage and topology inference."""

__version__ = "0.1.0"
__all__ = ["__version__"]