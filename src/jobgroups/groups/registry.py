"""Process-wide catalog of job groups supporting bulk cancellation."""

from __future__ import annotations

import logging

from jobgroups.errors import ConfigurationError, InternalInvariantError
from jobgroups.groups.group import JobGroup

logger = logging.getLogger(__name__)


class GroupRegistry:
    """Append-only ordered collection of job groups."""

    def __init__(self) -> None:
        self._groups: list[JobGroup] = []

    def __len__(self) -> int:
        return len(self._groups)

    def register(self, group: JobGroup) -> None:
        self._check_integrity()
        if not isinstance(group, JobGroup):
            raise ConfigurationError(
                f"Only JobGroup instances can be registered, got {type(group).__name__}",
            )
        self._groups.append(group)
        logger.debug(
            "Registered job group %s (jobs=%d, registry_size=%d)",
            group.name,
            group.num_jobs,
            len(self._groups),
        )

    def list(self) -> tuple[JobGroup, ...]:
        self._check_integrity()
        return tuple(self._groups)

    def clear(self) -> None:
        self._groups = []

    def cancel_all(self) -> None:
        """Cancel every registered group in registration order."""

        self._check_integrity()
        for group in tuple(self._groups):
            group.cancel()

    def _check_integrity(self) -> None:
        for item in self._groups:
            if not isinstance(item, JobGroup):
                raise InternalInvariantError(
                    f"Job group registry appears to be corrupted: found {type(item).__name__}",
                )


_REGISTRY: GroupRegistry | None = None


def init_registry() -> GroupRegistry:
    """Create the process-wide registry; returns the existing one if already set up."""

    global _REGISTRY  # noqa: PLW0603
    if _REGISTRY is None:
        _REGISTRY = GroupRegistry()
    return _REGISTRY


def get_registry() -> GroupRegistry:
    if _REGISTRY is None:
        raise InternalInvariantError(
            "Job group registry is not initialised. Call init_registry() first.",
        )
    return _REGISTRY


def reset_registry() -> None:
    """Drop the process-wide registry; the next init_registry() starts empty."""

    global _REGISTRY  # noqa: PLW0603
    _REGISTRY = None
