"""Commit history analysis with resumable LLM batch runs."""

__version__ = "0.1.0"
