"""Group coordinator aggregating many job lifecycles into one."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING

from jobgroups.errors import ConfigurationError
from jobgroups.groups.job import LIFECYCLE_SIGNALS, Job, LifecycleSignal
from jobgroups.groups.signals import SignalEmitter, SignalSource, Subscription
from jobgroups.groups.status import PAGE_BREAK, GroupStatusReport, build_status_report
from jobgroups.groups.triggers import TriggerGate
from jobgroups.timeutils import utc_now

if TYPE_CHECKING:
    from jobgroups.groups.registry import GroupRegistry

logger = logging.getLogger(__name__)


class FailureTiming(str, Enum):
    """Which failure signal defines the group end time."""

    LAST = "last"
    FIRST = "first"


@dataclass(slots=True)
class _JobSlot:
    """Per-index record; the index is assigned at insertion and never reused."""

    job: Job
    submitted: bool = False
    completed: bool = False
    failed: bool = False
    subscriptions: list[Subscription] = field(default_factory=list)

    def reset(self) -> None:
        self.submitted = False
        self.completed = False
        self.failed = False


class JobGroup(SignalEmitter):
    """Coordinates a fixed, ordered set of jobs and emits group lifecycle signals.

    Signals are expected on a single dispatch thread; handlers run to
    completion and no locking is performed.
    """

    def __init__(  # noqa: PLR0913
        self,
        jobs: Iterable[Job] = (),
        *,
        name: str = "",
        verbose: bool = False,
        failure_timing: FailureTiming = FailureTiming.LAST,
        registry: GroupRegistry | None = None,
        on_progress: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(LIFECYCLE_SIGNALS)
        self._name = name
        self.verbose = verbose
        self.failure_timing = FailureTiming(failure_timing)
        self._on_progress = on_progress or (lambda _msg: None)
        self._clock = clock
        self._now = now

        self._slots: list[_JobSlot] = []
        self._submitted = False
        self._completed = False
        self._failed = False
        self._cancelled = False

        self._started_monotonic: float | None = None
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration: float = 0.0

        self._gates: list[TriggerGate] = []

        for job in jobs:
            self.add_job(job)

        if registry is not None:
            registry.register(self)

    def __repr__(self) -> str:
        return f"JobGroup(name={self._name!r}, num_jobs={self.num_jobs})"

    # -- read-only state ------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def num_jobs(self) -> int:
        return len(self._slots)

    @property
    def jobs(self) -> tuple[Job, ...]:
        return tuple(slot.job for slot in self._slots)

    @property
    def job_submitted(self) -> tuple[bool, ...]:
        return tuple(slot.submitted for slot in self._slots)

    @property
    def job_completed(self) -> tuple[bool, ...]:
        return tuple(slot.completed for slot in self._slots)

    @property
    def job_failed(self) -> tuple[bool, ...]:
        return tuple(slot.failed for slot in self._slots)

    @property
    def trigger_gates(self) -> tuple[TriggerGate, ...]:
        return tuple(self._gates)

    # -- assembly -------------------------------------------------------------

    def add_job(self, job: Job) -> int:
        """Append ``job`` and return its stable index."""

        if not isinstance(job, Job):
            raise ConfigurationError(
                f"Job group {self._name!r} only accepts jobs implementing "
                f"submit/resubmit/cancel/signal, got {type(job).__name__}",
            )
        if self._submitted:
            raise ConfigurationError(
                f"Cannot add jobs to job group {self._name!r} after submission.",
            )

        index = len(self._slots)
        slot = _JobSlot(job=job)
        slot.subscriptions = [
            job.signal(LifecycleSignal.SUBMITTED.value).connect(
                partial(self._mark_job_submitted, index),
            ),
            job.signal(LifecycleSignal.COMPLETED.value).connect(
                partial(self._mark_job_completed, index),
            ),
            job.signal(LifecycleSignal.FAILED.value).connect(
                partial(self._mark_job_failed, index),
            ),
        ]
        self._slots.append(slot)
        return index

    def add_submit_trigger(self, source: SignalSource, signal_name: str) -> int:
        """Gate auto-submission on ``signal_name`` from ``source`` (AND across triggers)."""

        if not self._gates:
            self.add_trigger_gate()
        return self._gates[0].add_trigger(source, signal_name)

    def add_trigger_gate(self) -> TriggerGate:
        """Create an additional gate evaluated independently of the others."""

        gate = TriggerGate(self.submit, owner_name=self._name, progress=self._report)
        self._gates.append(gate)
        return gate

    # -- commands -------------------------------------------------------------

    def submit(self) -> None:
        """Submit every job once; repeated calls are no-ops."""

        if self._submitted:
            logger.debug("Job group %s already submitted", self._name)
            return

        self._report(PAGE_BREAK, f"Submitting: {self._name}", f"... at {self._now().isoformat()}")
        self._submitted = True
        self._start_clock()
        for slot in self._slots:
            slot.job.submit()
        self.emit(LifecycleSignal.SUBMITTED.value)

    def resubmit(self) -> None:
        """Reset all derived state and resubmit every job."""

        self._report(
            PAGE_BREAK,
            f"Resubmitting: {self._name}",
            f"... at {self._now().isoformat()}",
        )
        self._completed = False
        self._submitted = False
        self._failed = False
        self._cancelled = False
        for slot in self._slots:
            slot.reset()
        self._started_monotonic = None
        self.end_time = None
        self.duration = 0.0

        self._submitted = True
        self._start_clock()
        for slot in self._slots:
            slot.job.resubmit()
        self.emit(LifecycleSignal.SUBMITTED.value)

    def cancel(self) -> None:
        """Cancel every job if the group is in flight; otherwise do nothing."""

        if not self._submitted or self._completed:
            logger.debug("Job group %s not cancellable in its current state", self._name)
            return

        for slot in self._slots:
            slot.job.cancel()
        self._stop_clock()
        self._cancelled = True
        self._report(
            PAGE_BREAK,
            f"Canceling: {self._name}",
            f"... at {_fmt_instant(self.end_time)}",
            f"... group ran for {self.duration:.3f} s",
        )

    def status(self) -> GroupStatusReport:
        return build_status_report(self, now=self._now())

    def close(self) -> None:
        """Disconnect from all jobs and trigger sources."""

        for slot in self._slots:
            for subscription in slot.subscriptions:
                subscription.cancel()
        for gate in self._gates:
            gate.close()

    # -- job signal handlers --------------------------------------------------

    def _mark_job_submitted(self, index: int) -> None:
        self._slots[index].submitted = True

    def _mark_job_completed(self, index: int) -> None:
        self._slots[index].completed = True
        if self._completed:
            return
        if not all(slot.completed for slot in self._slots):
            return

        self._stop_clock()
        self._report(
            PAGE_BREAK,
            f"Completed: {self._name}",
            f"... at {_fmt_instant(self.end_time)}",
            f"... group ran for {self.duration:.3f} s",
        )
        self._completed = True
        self.emit(LifecycleSignal.COMPLETED.value)

    def _mark_job_failed(self, index: int) -> None:
        self._slots[index].failed = True
        if not self._failed or self.failure_timing is FailureTiming.LAST:
            self._stop_clock()
        self._report(
            PAGE_BREAK,
            f"Failed: {self._name} (job {index})",
            f"... at {_fmt_instant(self.end_time)}",
            f"... group ran for {self.duration:.3f} s",
        )
        self._failed = True
        self.emit(LifecycleSignal.FAILED.value)

    # -- helpers --------------------------------------------------------------

    def _start_clock(self) -> None:
        self._started_monotonic = self._clock()
        self.start_time = self._now()

    def _stop_clock(self) -> None:
        self.end_time = self._now()
        if self._started_monotonic is not None:
            self.duration = self._clock() - self._started_monotonic

    def _report(self, *lines: str) -> None:
        for line in lines:
            if self.verbose:
                logger.info(line)
                self._on_progress(line)
            else:
                logger.debug(line)


def _fmt_instant(value: datetime | None) -> str:
    return value.isoformat() if value is not None else "-"
