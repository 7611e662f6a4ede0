"""Concrete job backends."""

from jobgroups.groups.backend.local import LocalProcessJob

__all__ = [
    "LocalProcessJob",
]
