"""Offline-first gym workout log with remote sync."""

__version__ = "0.1.0"
