"""Read-only status projection over a job group."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from jobgroups.timeutils import utc_now

if TYPE_CHECKING:
    from jobgroups.groups.group import JobGroup

PAGE_BREAK = "-" * 60


class GroupState(str, Enum):
    """Coarse aggregate state label."""

    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


def derive_state(
    *,
    submitted: bool,
    completed: bool,
    failed: bool,
    cancelled: bool = False,
) -> GroupState:
    """Resolve the label with precedence completed > failed > cancelled > submitted."""

    if completed:
        return GroupState.COMPLETED
    if failed:
        return GroupState.FAILED
    if cancelled:
        return GroupState.CANCELLED
    if submitted:
        return GroupState.SUBMITTED
    return GroupState.UNSUBMITTED


@dataclass(slots=True, frozen=True)
class GroupStatusReport:
    """Snapshot of one group's aggregate and per-job counters."""

    name: str
    state: GroupState
    relevant_time: datetime
    start_time: datetime | None
    end_time: datetime | None
    duration: float
    num_jobs: int
    num_submitted: int
    num_completed: int
    num_failed: int
    mean_job_duration: float | None

    def short_line(self) -> str:
        return f"{self.name}: {self.state.value} at {self.relevant_time.isoformat()}"

    def lines(self) -> list[str]:
        return [
            f"Status report for job group: {self.name}",
            f"Current state: {self.state.value}",
            f"Start time: {_fmt_time(self.start_time)}",
            f"End time: {_fmt_time(self.end_time)}",
            f"Duration (s): {self.duration:.3f}",
            PAGE_BREAK,
            f"Number of jobs: {self.num_jobs}",
            f"Number submitted: {self.num_submitted}",
            f"Number complete: {self.num_completed}",
            f"Number failed: {self.num_failed}",
            f"Average duration (s): {_fmt_seconds(self.mean_job_duration)}",
        ]


def build_status_report(group: JobGroup, *, now: datetime | None = None) -> GroupStatusReport:
    """Project ``group`` into a report without touching its state."""

    state = derive_state(
        submitted=group.submitted,
        completed=group.completed,
        failed=group.failed,
        cancelled=group.cancelled,
    )
    relevant_time = now or utc_now()
    if state in (GroupState.COMPLETED, GroupState.FAILED, GroupState.CANCELLED):
        relevant_time = group.end_time or relevant_time
    elif state == GroupState.SUBMITTED:
        relevant_time = group.start_time or relevant_time

    return GroupStatusReport(
        name=group.name,
        state=state,
        relevant_time=relevant_time,
        start_time=group.start_time,
        end_time=group.end_time,
        duration=group.duration,
        num_jobs=group.num_jobs,
        num_submitted=sum(group.job_submitted),
        num_completed=sum(group.job_completed),
        num_failed=sum(group.job_failed),
        mean_job_duration=mean_known_duration(job.duration for job in group.jobs),
    )


def mean_known_duration(durations) -> float | None:
    """Mean over durations that are known; unknown (None) entries are skipped."""

    known = [float(value) for value in durations if value is not None]
    if not known:
        return None
    return sum(known) / len(known)


def _fmt_time(value: datetime | None) -> str:
    return value.isoformat() if value is not None else "-"


def _fmt_seconds(value: float | None) -> str:
    return f"{value:.3f}" if value is not None else "-"
