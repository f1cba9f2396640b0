"""Minjok Journal - paper submission, review and publishing API."""

__version__ = "1.0.0"
