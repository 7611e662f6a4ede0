"""Runtime configuration for job group runs."""

from __future__ import annotations

import os
from dataclasses import dataclass

from jobgroups.groups.group import FailureTiming


@dataclass(slots=True)
class Settings:
    """Settings for coordinating and dispatching job groups."""

    verbose: bool = False
    failure_timing: FailureTiming = FailureTiming.LAST
    poll_interval_seconds: float = 0.5
    timeout_seconds: float = 0.0
    cancel_on_failure: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local runs."""

        return cls(
            verbose=_env_bool("JOBGROUPS_VERBOSE", default=False),
            failure_timing=_env_failure_timing("JOBGROUPS_FAILURE_TIMING"),
            poll_interval_seconds=float(os.getenv("JOBGROUPS_POLL_INTERVAL_SECONDS", "0.5")),
            timeout_seconds=float(os.getenv("JOBGROUPS_TIMEOUT_SECONDS", "0")),
            cancel_on_failure=_env_bool("JOBGROUPS_CANCEL_ON_FAILURE", default=False),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.poll_interval_seconds <= 0:
            raise ValueError("JOBGROUPS_POLL_INTERVAL_SECONDS must be > 0.")
        if self.timeout_seconds < 0:
            raise ValueError("JOBGROUPS_TIMEOUT_SECONDS must be >= 0.")


def _env_failure_timing(name: str) -> FailureTiming:
    value = os.getenv(name, FailureTiming.LAST.value).strip().lower()
    try:
        return FailureTiming(value)
    except ValueError as error:
        allowed = ", ".join(member.value for member in FailureTiming)
        raise ValueError(
            f"Invalid value for {name}: {value!r}. Expected one of: {allowed}",
        ) from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
