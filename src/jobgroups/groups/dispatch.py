"""Cooperative single-thread poll loop delivering job signals."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from jobgroups.groups.group import JobGroup

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchSummary:
    """Outcome counters of one dispatch run."""

    polls: int = 0
    timed_out: bool = False
    stopped: bool = False


def poll_until_settled(  # noqa: PLR0913
    groups: Iterable[JobGroup],
    *,
    poll_interval_seconds: float = 0.5,
    timeout_seconds: float | None = None,
    stop_requested: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> DispatchSummary:
    """Poll jobs of ``groups`` until nothing is left in flight.

    A group is in flight while it is submitted and neither completed, failed
    nor cancelled, or while any of its pollable jobs is still running. Groups
    waiting on a trigger gate are started by the signals delivered here.
    """

    tracked = tuple(groups)
    summary = DispatchSummary()
    deadline = clock() + timeout_seconds if timeout_seconds else None

    while True:
        pending = False
        for group in tracked:
            for job in group.jobs:
                poll = getattr(job, "poll", None)
                if callable(poll) and not poll():
                    pending = pending or bool(getattr(job, "running", False))
        summary.polls += 1

        if not pending and not any(_in_flight(group) for group in tracked):
            return summary
        if stop_requested is not None and stop_requested():
            logger.info("Dispatch stop requested after %d polls", summary.polls)
            summary.stopped = True
            return summary
        if deadline is not None and clock() >= deadline:
            logger.warning("Dispatch timed out after %d polls", summary.polls)
            summary.timed_out = True
            return summary
        sleep(poll_interval_seconds)


def _in_flight(group: JobGroup) -> bool:
    return group.submitted and not (group.completed or group.failed or group.cancelled)
