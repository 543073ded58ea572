"""Asynchronous virtual try-on orchestration core."""

__version__ = "1.0.0"
