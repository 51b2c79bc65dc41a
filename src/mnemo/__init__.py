"""Mnemo: a chat assistant that learns who you are."""

__version__ = "0.1.0"
