"""Synchronous in-process signals used to wire jobs, groups, and trigger gates."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from jobgroups.errors import ConfigurationError

logger = logging.getLogger(__name__)

Handler = Callable[[], None]


class Subscription:
    """Handle for one connected handler."""

    __slots__ = ("_handler", "_signal")

    def __init__(self, signal: Signal, handler: Handler) -> None:
        self._signal: Signal | None = signal
        self._handler = handler

    @property
    def active(self) -> bool:
        return self._signal is not None

    def cancel(self) -> None:
        """Disconnect the handler; safe to call more than once."""

        if self._signal is None:
            return
        self._signal.disconnect(self._handler)
        self._signal = None


class Signal:
    """Named zero-payload notification channel.

    Handlers run synchronously, in connection order, on the emitting thread.
    The handler list is snapshotted at emit time, so handlers connected or
    disconnected while an emission is in progress only see later emissions.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def connect(self, handler: Handler) -> Subscription:
        if not callable(handler):
            raise ConfigurationError(f"Signal handler must be callable, got {handler!r}")
        self._handlers.append(handler)
        return Subscription(self, handler)

    def disconnect(self, handler: Handler) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            logger.debug("Handler already disconnected from signal %s", self.name)

    def emit(self) -> None:
        for handler in tuple(self._handlers):
            handler()


@runtime_checkable
class SignalSource(Protocol):
    """Anything that can hand out a named signal."""

    def signal(self, name: str) -> Signal:
        """Return the channel for ``name``."""


class SignalEmitter:
    """Owns a fixed set of declared signals."""

    def __init__(self, signal_names: Iterable[str]) -> None:
        self._signals = {str(name): Signal(str(name)) for name in signal_names}

    @property
    def signal_names(self) -> tuple[str, ...]:
        return tuple(self._signals)

    def signal(self, name: str) -> Signal:
        try:
            return self._signals[str(name)]
        except KeyError as error:
            raise ConfigurationError(
                f"{type(self).__name__} does not emit {name!r}. "
                f"Known signals: {', '.join(self._signals) or 'none'}.",
            ) from error

    def emit(self, name: str) -> None:
        self.signal(name).emit()
