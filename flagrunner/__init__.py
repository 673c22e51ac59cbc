"""Fetch, cache and transform challenge payloads, then report answers."""

__version__ = "0.1.0"

__all__ = ["__version__"]
