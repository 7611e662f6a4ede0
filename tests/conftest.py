"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from jobgroups.groups import BaseJob


class FakeJob(BaseJob):
    """Records calls; lifecycle signals are delivered by the test."""

    def __init__(self, name: str = "job", duration: float | None = None) -> None:
        super().__init__(name=name)
        self.calls: list[str] = []
        self._duration = duration

    @property
    def duration(self) -> float | None:
        return self._duration

    def submit(self) -> None:
        self.calls.append("submit")
        self.mark_submitted()

    def resubmit(self) -> None:
        self.calls.append("resubmit")
        self.mark_submitted()

    def cancel(self) -> None:
        self.calls.append("cancel")


class FakeClock:
    """Manually advanced monotonic clock with a matching wall clock."""

    def __init__(self) -> None:
        self.value = 100.0
        self.epoch = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> float:
        return self.value

    def now(self) -> datetime:
        return self.epoch + timedelta(seconds=self.value)

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture()
def make_jobs():
    def _make(count: int, durations: list[float | None] | None = None) -> list[FakeJob]:
        durations = durations or [None] * count
        return [FakeJob(name=f"job-{index}", duration=durations[index]) for index in range(count)]

    return _make


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
