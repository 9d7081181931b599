"""Evaluated model builder for dependency analysis, scan and evaluation results."""

__version__ = "0.1.0"
