"""Job capability contract required by the group coordinator."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from jobgroups.groups.signals import Signal, SignalEmitter


class LifecycleSignal(str, Enum):
    """Signal names shared by jobs and groups."""

    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FAILED = "failed"


LIFECYCLE_SIGNALS: tuple[str, ...] = tuple(member.value for member in LifecycleSignal)


@runtime_checkable
class Job(Protocol):
    """Protocol implemented by externally executed units of work.

    A job emits exactly one ``submitted`` signal per submission and at most one
    terminal signal (``completed`` or ``failed``) per submission lifecycle.
    """

    name: str

    @property
    def duration(self) -> float | None:
        """Run time of the latest submission in seconds, if known."""

    def submit(self) -> None:
        """Submit the job to its backend."""

    def resubmit(self) -> None:
        """Submit the job again, discarding previous lifecycle state."""

    def cancel(self) -> None:
        """Request cancellation; best effort."""

    def signal(self, name: str) -> Signal:
        """Return the lifecycle channel for ``name``."""


class BaseJob(SignalEmitter):
    """Declares lifecycle signals; subclasses implement submit/resubmit/cancel."""

    def __init__(self, name: str = "") -> None:
        super().__init__(LIFECYCLE_SIGNALS)
        self.name = name

    @property
    def duration(self) -> float | None:
        return None

    def submit(self) -> None:
        raise NotImplementedError

    def resubmit(self) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError

    def mark_submitted(self) -> None:
        self.emit(LifecycleSignal.SUBMITTED.value)

    def mark_completed(self) -> None:
        self.emit(LifecycleSignal.COMPLETED.value)

    def mark_failed(self) -> None:
        self.emit(LifecycleSignal.FAILED.value)
