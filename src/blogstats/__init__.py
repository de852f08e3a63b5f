"""Visitor-session and page-view analytics API."""

__version__ = "0.1.0"
