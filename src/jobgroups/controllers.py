"""Controllers for job group CLI commands."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from jobgroups.config import Settings
from jobgroups.errors import ConfigurationError
from jobgroups.groups import FailureTiming, GroupRegistry, JobGroup, LifecycleSignal
from jobgroups.groups.backend import LocalProcessJob
from jobgroups.groups.dispatch import DispatchSummary, poll_until_settled

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunGroupsCommand:
    """CLI input for running one or more job groups."""

    job_specs: tuple[str, ...]
    chain: bool = False
    cancel_on_failure: bool | None = None
    poll_interval_seconds: float | None = None
    timeout_seconds: float | None = None
    verbose: bool | None = None
    failure_timing: str | None = None
    log_dir: Path | None = None


@dataclass(slots=True)
class RunGroupsResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool
    groups: list[JobGroup] = field(default_factory=list)


class GroupCliController:
    """Builds job groups from CLI input and drives them to a terminal state."""

    def __init__(self, *, on_progress: Callable[[str], None] | None = None) -> None:
        self._on_progress = on_progress
        self._stop_reason: str | None = None

    def run_groups(self, command: RunGroupsCommand) -> RunGroupsResult:
        settings = _resolve_settings(command)
        registry = GroupRegistry()
        groups = self._build_groups(command, settings=settings, registry=registry)

        self._stop_reason = None
        if settings.cancel_on_failure:
            for group in groups:
                group.signal(LifecycleSignal.FAILED.value).connect(
                    lambda group=group: self._request_stop(f"job group {group.name} failed"),
                )

        if command.chain:
            for upstream, downstream in zip(groups, groups[1:], strict=False):
                downstream.add_submit_trigger(upstream, LifecycleSignal.COMPLETED.value)
            groups[0].submit()
        else:
            for group in groups:
                group.submit()

        with self._stop_on_termination_signals():
            summary = poll_until_settled(
                groups,
                poll_interval_seconds=settings.poll_interval_seconds,
                timeout_seconds=settings.timeout_seconds or None,
                stop_requested=lambda: self._stop_reason is not None,
            )
        if summary.stopped or summary.timed_out:
            logger.info("Cancelling %d registered job groups", len(registry))
            registry.cancel_all()

        lines = _render_summary(summary, registry.list(), verbose=settings.verbose)
        if self._stop_reason is not None:
            lines.append(f"Stop requested: {self._stop_reason}")
        success = not summary.timed_out and all(group.completed for group in groups)
        return RunGroupsResult(lines=lines, success=success, groups=groups)

    def _build_groups(
        self,
        command: RunGroupsCommand,
        *,
        settings: Settings,
        registry: GroupRegistry,
    ) -> list[JobGroup]:
        commands_by_group: dict[str, list[str]] = {}
        for spec in command.job_specs:
            group_name, job_command = parse_job_spec(spec)
            commands_by_group.setdefault(group_name, []).append(job_command)
        if not commands_by_group:
            raise ConfigurationError("At least one --job NAME=COMMAND is required.")

        groups: list[JobGroup] = []
        for group_name, job_commands in commands_by_group.items():
            jobs = [
                LocalProcessJob(
                    job_command,
                    name=f"{group_name}[{index}]",
                    **_log_paths(command.log_dir, group_name, index),
                )
                for index, job_command in enumerate(job_commands)
            ]
            groups.append(
                JobGroup(
                    jobs,
                    name=group_name,
                    verbose=settings.verbose,
                    failure_timing=settings.failure_timing,
                    registry=registry,
                    on_progress=self._on_progress,
                ),
            )
        return groups

    def _request_stop(self, reason: str) -> None:
        """Record the first stop reason; the dispatch loop then cancels all groups."""

        if self._stop_reason is not None:
            return
        self._stop_reason = reason
        logger.info("Stop requested: %s", reason)

    @contextmanager
    def _stop_on_termination_signals(self) -> Iterator[None]:
        signums = [
            getattr(signal, name) for name in ("SIGINT", "SIGTERM") if hasattr(signal, name)
        ]

        def _handler(signum: int, _: object | None) -> None:
            self._request_stop(f"received {signal.Signals(signum).name}")

        try:
            originals = {signum: signal.signal(signum, _handler) for signum in signums}
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return
        try:
            yield
        finally:
            for signum, original in originals.items():
                signal.signal(signum, original)


def parse_job_spec(spec: str) -> tuple[str, str]:
    """Split ``NAME=COMMAND`` into its parts."""

    if "=" not in spec:
        raise ConfigurationError(f"Invalid job spec {spec!r}. Expected format 'NAME=COMMAND'.")
    name, job_command = spec.split("=", 1)
    name = name.strip()
    job_command = job_command.strip()
    if not name or not job_command:
        raise ConfigurationError(
            f"Invalid job spec {spec!r}. Both NAME and COMMAND must be non-empty.",
        )
    return name, job_command


def _resolve_settings(command: RunGroupsCommand) -> Settings:
    settings = Settings.from_env()
    if command.verbose is not None:
        settings.verbose = command.verbose
    if command.cancel_on_failure is not None:
        settings.cancel_on_failure = command.cancel_on_failure
    if command.poll_interval_seconds is not None:
        settings.poll_interval_seconds = command.poll_interval_seconds
    if command.timeout_seconds is not None:
        settings.timeout_seconds = command.timeout_seconds
    if command.failure_timing is not None:
        settings.failure_timing = FailureTiming(command.failure_timing)
    settings.validate()
    return settings


def _log_paths(log_dir: Path | None, group_name: str, index: int) -> dict[str, Path]:
    if log_dir is None:
        return {}
    base = log_dir / group_name
    return {
        "stdout_path": base / f"job_{index}.stdout.log",
        "stderr_path": base / f"job_{index}.stderr.log",
    }


def _render_summary(
    summary: DispatchSummary,
    groups: tuple[JobGroup, ...],
    *,
    verbose: bool,
) -> list[str]:
    lines = [
        "Run summary: "
        f"groups={len(groups)} "
        f"completed={sum(group.completed for group in groups)} "
        f"failed={sum(group.failed for group in groups)} "
        f"polls={summary.polls} timed_out={summary.timed_out} stopped={summary.stopped}",
    ]
    for group in groups:
        report = group.status()
        lines.append(f"  {report.short_line()}")
        if verbose:
            lines.extend(f"    {line}" for line in report.lines())
    return lines
