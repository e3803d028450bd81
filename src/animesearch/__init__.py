"""Concurrent anime search over Kazumi rule sites."""

__version__ = "0.2.0"
