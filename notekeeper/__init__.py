"""Notekeeper AI: note classification, embedding and retrieval."""

__version__ = "0.1.0"
