"""Lifecycle aggregation for groups of asynchronously executing jobs."""

__version__ = "0.1.0"
