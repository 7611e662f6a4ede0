"""Jobs backed by local subprocesses, polled from the dispatch thread."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import IO

from jobgroups.errors import ConfigurationError
from jobgroups.groups.job import BaseJob

logger = logging.getLogger(__name__)

CANCEL_EXIT_CODE = 130


class LocalProcessJob(BaseJob):
    """Runs one command per submission; ``poll()`` delivers the terminal signal."""

    def __init__(  # noqa: PLR0913
        self,
        command: str | Sequence[str],
        *,
        name: str = "",
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        stdout_path: Path | None = None,
        stderr_path: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.argv = _build_argv(command)
        super().__init__(name=name or self.argv[0])
        self.cwd = cwd
        self.env = env
        self.stdout_path = stdout_path
        self.stderr_path = stderr_path
        self._clock = clock

        self._process: subprocess.Popen[bytes] | None = None
        self._handles: list[IO[bytes]] = []
        self._started_monotonic: float | None = None
        self._duration: float | None = None
        self._settled = False
        self.exit_code: int | None = None
        self.error: str | None = None
        self.cancelled = False
        self.submissions = 0

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def running(self) -> bool:
        return self._process is not None and not self._settled

    @property
    def settled(self) -> bool:
        return self._settled

    def submit(self) -> None:
        if self.running:
            logger.debug("Job %s already running; submit ignored", self.name)
            return
        self._spawn()

    def resubmit(self) -> None:
        if self.running:
            self._terminate()
        self._spawn()

    def cancel(self) -> None:
        if not self.running:
            return
        self._terminate()
        self.cancelled = True
        logger.info("Cancelled job %s", self.name)

    def poll(self) -> bool:
        """Check the process; emit the terminal signal once. Returns True when settled."""

        if self._settled or self._process is None:
            return self._settled
        returncode = self._process.poll()
        if returncode is None:
            return False

        self._finish(returncode)
        if returncode == 0:
            self.mark_completed()
        else:
            logger.warning("Job %s exited with code %d", self.name, returncode)
            self.mark_failed()
        return True

    def _spawn(self) -> None:
        self._reset()
        self.submissions += 1
        self._started_monotonic = self._clock()
        try:
            stdout = self._open_output(self.stdout_path)
            stderr = self._open_output(self.stderr_path)
            self._process = subprocess.Popen(  # noqa: S603
                self.argv,
                cwd=self.cwd,
                env={**os.environ, **self.env} if self.env else None,
                stdout=stdout,
                stderr=stderr,
            )
        except OSError as error:
            self._close_handles()
            self.error = f"Failed to start {self.argv[0]!r}: {error}"
            logger.warning("Job %s: %s", self.name, self.error)
            self._settled = True
            self._duration = 0.0
            self.mark_submitted()
            self.mark_failed()
            return

        logger.debug("Job %s started pid=%s argv=%s", self.name, self._process.pid, self.argv)
        self.mark_submitted()

    def _reset(self) -> None:
        self._process = None
        self._settled = False
        self._duration = None
        self.exit_code = None
        self.error = None
        self.cancelled = False

    def _finish(self, returncode: int) -> None:
        self.exit_code = returncode
        self._settled = True
        if self._started_monotonic is not None:
            self._duration = self._clock() - self._started_monotonic
        self._close_handles()

    def _terminate(self) -> None:
        if self._process is not None:
            _terminate_process(self._process)
        self._finish(CANCEL_EXIT_CODE)

    def _open_output(self, path: Path | None) -> IO[bytes] | int:
        if path is None:
            return subprocess.DEVNULL
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = path.open("wb")
        self._handles.append(handle)
        return handle

    def _close_handles(self) -> None:
        for handle in self._handles:
            handle.close()
        self._handles = []


def _build_argv(command: str | Sequence[str]) -> list[str]:
    argv = shlex.split(command) if isinstance(command, str) else [str(part) for part in command]
    if not argv:
        raise ConfigurationError("Job command is empty.")
    return argv


def _terminate_process(process: subprocess.Popen[str] | subprocess.Popen[bytes]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
