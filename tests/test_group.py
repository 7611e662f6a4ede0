from __future__ import annotations

import itertools

import allure
import pytest

from jobgroups.errors import ConfigurationError
from jobgroups.groups import FailureTiming, JobGroup, LifecycleSignal

pytestmark = [
    allure.epic("Job Groups"),
    allure.feature("Lifecycle Aggregation"),
]


def _record(group: JobGroup, signal_name: str) -> list[str]:
    events: list[str] = []
    group.signal(signal_name).connect(lambda: events.append(signal_name))
    return events


@pytest.mark.parametrize(
    "order",
    [order for count in range(4) for order in itertools.permutations(range(count))],
)
def test_completed_fires_once_for_any_completion_order(make_jobs, order) -> None:
    jobs = make_jobs(len(order))
    group = JobGroup(jobs, name="array")
    completed = _record(group, LifecycleSignal.COMPLETED.value)
    group.submit()

    for index in order:
        assert not group.completed
        jobs[index].mark_completed()

    if jobs:
        assert completed == ["completed"]
        assert group.completed
    assert group.submitted


def test_repeated_completion_signals_do_not_refire(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array")
    completed = _record(group, LifecycleSignal.COMPLETED.value)
    group.submit()

    jobs[0].mark_completed()
    jobs[1].mark_completed()
    jobs[1].mark_completed()
    jobs[0].mark_completed()

    assert completed == ["completed"]


def test_empty_group_never_completes_on_its_own() -> None:
    group = JobGroup(name="empty")
    group.submit()

    assert group.submitted
    assert not group.completed
    assert group.num_jobs == 0


def test_failure_is_sticky_and_emitted_per_signal(make_jobs) -> None:
    jobs = make_jobs(3)
    group = JobGroup(jobs, name="array")
    failed = _record(group, LifecycleSignal.FAILED.value)
    group.submit()

    jobs[0].mark_completed()
    jobs[1].mark_failed()
    jobs[2].mark_failed()

    assert group.failed
    assert not group.completed
    assert failed == ["failed", "failed"]
    assert group.job_failed == (False, True, True)


def test_failure_does_not_cancel_siblings(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array")
    group.submit()

    jobs[0].mark_failed()

    assert "cancel" not in jobs[1].calls


def test_failure_end_time_follows_last_failure_by_default(make_jobs, clock) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array", clock=clock, now=clock.now)
    group.submit()

    clock.advance(5)
    jobs[0].mark_failed()
    clock.advance(7)
    jobs[1].mark_failed()

    assert group.end_time == clock.now()
    assert group.duration == pytest.approx(12)


def test_failure_end_time_can_follow_first_failure(make_jobs, clock) -> None:
    jobs = make_jobs(2)
    group = JobGroup(
        jobs,
        name="array",
        failure_timing=FailureTiming.FIRST,
        clock=clock,
        now=clock.now,
    )
    group.submit()

    clock.advance(5)
    jobs[0].mark_failed()
    first_failure = clock.now()
    clock.advance(7)
    jobs[1].mark_failed()

    assert group.end_time == first_failure
    assert group.duration == pytest.approx(5)


def test_completion_records_monotonic_duration(make_jobs, clock) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array", clock=clock, now=clock.now)
    group.submit()
    started = group.start_time

    clock.advance(3)
    jobs[1].mark_completed()
    clock.advance(4)
    jobs[0].mark_completed()

    assert group.start_time == started
    assert group.end_time == clock.now()
    assert group.duration == pytest.approx(7)


def test_submit_is_idempotent(make_jobs) -> None:
    jobs = make_jobs(3)
    group = JobGroup(jobs, name="array")
    submitted = _record(group, LifecycleSignal.SUBMITTED.value)

    group.submit()
    group.submit()

    assert [job.calls for job in jobs] == [["submit"]] * 3
    assert submitted == ["submitted"]
    assert group.job_submitted == (True, True, True)


def test_resubmit_after_failure_clears_all_flags(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array")
    group.submit()
    jobs[0].mark_completed()
    jobs[1].mark_failed()
    assert group.failed

    observed: list[tuple[bool, bool, tuple[bool, ...], tuple[bool, ...]]] = []
    original_resubmit = jobs[0].resubmit

    def _resubmit_and_observe() -> None:
        observed.append((group.failed, group.completed, group.job_failed, group.job_completed))
        original_resubmit()

    jobs[0].resubmit = _resubmit_and_observe
    group.resubmit()

    assert observed == [(False, False, (False, False), (False, False))]
    assert not group.failed
    assert not group.completed
    assert group.submitted
    assert group.job_failed == (False, False)
    assert group.job_completed == (False, False)
    assert jobs[1].calls == ["submit", "resubmit"]


def test_resubmit_after_completion_allows_completing_again(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array")
    completed = _record(group, LifecycleSignal.COMPLETED.value)
    group.submit()
    for job in jobs:
        job.mark_completed()

    group.resubmit()
    assert not group.completed
    for job in jobs:
        job.mark_completed()

    assert completed == ["completed", "completed"]


def test_cancel_before_submit_is_noop(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array")

    group.cancel()

    assert all("cancel" not in job.calls for job in jobs)
    assert not group.submitted
    assert not group.cancelled
    assert group.end_time is None


def test_cancel_in_flight_cancels_jobs_in_order(make_jobs, clock) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs, name="array", clock=clock, now=clock.now)
    group.submit()
    clock.advance(2)

    group.cancel()

    assert [job.calls for job in jobs] == [["submit", "cancel"]] * 2
    assert group.cancelled
    assert group.submitted
    assert not group.completed
    assert not group.failed
    assert group.duration == pytest.approx(2)


def test_cancel_after_completion_is_noop(make_jobs) -> None:
    jobs = make_jobs(1)
    group = JobGroup(jobs, name="array")
    group.submit()
    jobs[0].mark_completed()

    group.cancel()

    assert jobs[0].calls == ["submit"]
    assert not group.cancelled


def test_add_job_rejects_non_conforming_values() -> None:
    group = JobGroup(name="array")

    with pytest.raises(ConfigurationError, match="only accepts jobs"):
        group.add_job(object())


def test_constructor_rejects_non_conforming_jobs(make_jobs) -> None:
    with pytest.raises(ConfigurationError):
        JobGroup([*make_jobs(1), "not a job"], name="array")


def test_add_job_after_submit_is_rejected(make_jobs) -> None:
    jobs = make_jobs(2)
    group = JobGroup(jobs[:1], name="array")
    group.submit()

    with pytest.raises(ConfigurationError, match="after submission"):
        group.add_job(jobs[1])


def test_indices_are_stable_and_arrays_aligned(make_jobs) -> None:
    jobs = make_jobs(3)
    group = JobGroup(name="array")

    assert [group.add_job(job) for job in jobs] == [0, 1, 2]
    group.submit()
    jobs[2].mark_completed()

    assert group.jobs == tuple(jobs)
    assert group.job_completed == (False, False, True)
    assert (
        len(group.jobs)
        == len(group.job_submitted)
        == len(group.job_completed)
        == len(group.job_failed)
        == group.num_jobs
    )


def test_verbose_reports_progress_without_changing_state(make_jobs) -> None:
    lines: list[str] = []
    quiet_jobs = make_jobs(2)
    loud_jobs = make_jobs(2)
    quiet = JobGroup(quiet_jobs, name="quiet", on_progress=lines.append)
    loud = JobGroup(loud_jobs, name="loud", verbose=True, on_progress=lines.append)

    for group, jobs in ((quiet, quiet_jobs), (loud, loud_jobs)):
        group.submit()
        jobs[0].mark_completed()
        jobs[1].mark_failed()

    assert (quiet.submitted, quiet.completed, quiet.failed) == (
        loud.submitted,
        loud.completed,
        loud.failed,
    )
    assert "Submitting: loud" in lines
    assert any(line.startswith("Failed: loud") for line in lines)
    assert not any("quiet" in line for line in lines)


def test_name_is_read_only() -> None:
    group = JobGroup(name="array")

    with pytest.raises(AttributeError):
        group.name = "other"


def test_close_disconnects_from_jobs(make_jobs) -> None:
    jobs = make_jobs(1)
    group = JobGroup(jobs, name="array")
    group.submit()

    group.close()
    jobs[0].mark_completed()

    assert not group.completed


def test_job_completing_inside_submit_sees_submitted_group(make_jobs) -> None:
    jobs = make_jobs(1)
    job = jobs[0]
    original_submit = job.submit

    def _submit_and_finish() -> None:
        original_submit()
        job.mark_completed()

    job.submit = _submit_and_finish
    group = JobGroup(jobs, name="array")
    observed: list[tuple[str, bool]] = []
    group.signal(LifecycleSignal.COMPLETED.value).connect(
        lambda: observed.append(("completed", group.submitted)),
    )

    group.submit()

    assert observed == [("completed", True)]
    assert group.completed
    assert group.submitted
