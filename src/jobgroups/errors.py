"""Exception taxonomy for job group coordination."""

from __future__ import annotations


class JobGroupError(RuntimeError):
    """Base class for job group errors."""


class ConfigurationError(JobGroupError, ValueError):
    """A caller supplied a value that does not satisfy a required contract."""


class InternalInvariantError(JobGroupError):
    """Internal state was found corrupted; indicates a programming error elsewhere."""
