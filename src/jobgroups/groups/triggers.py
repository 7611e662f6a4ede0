"""AND-gate over external signals that auto-submits a group."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from jobgroups.errors import ConfigurationError
from jobgroups.groups.signals import SignalSource, Subscription

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _TriggerSlot:
    source_name: str
    signal_name: str
    subscription: Subscription
    fired: bool = False


class TriggerGate:
    """Calls ``on_fire`` once, after every subscribed signal fired at least once.

    Flags are not cleared after firing. Re-arming is explicit via ``reset``.
    """

    def __init__(
        self,
        on_fire: Callable[[], None],
        *,
        owner_name: str = "",
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self._on_fire = on_fire
        self._owner_name = owner_name
        self._progress = progress or logger.debug
        self._slots: list[_TriggerSlot] = []
        self._fired = False

    @property
    def armed(self) -> bool:
        return bool(self._slots) and not self._fired

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def flags(self) -> tuple[bool, ...]:
        return tuple(slot.fired for slot in self._slots)

    def add_trigger(self, source: SignalSource, signal_name: str) -> int:
        """Subscribe to ``signal_name`` on ``source`` and return the trigger index."""

        if not isinstance(source, SignalSource):
            raise ConfigurationError(
                f"Trigger source must provide signal(name), got {type(source).__name__}",
            )
        signal = source.signal(signal_name)
        index = len(self._slots)
        subscription = signal.connect(partial(self._handle_trigger, index))
        self._slots.append(
            _TriggerSlot(
                source_name=str(getattr(source, "name", "") or type(source).__name__),
                signal_name=str(signal_name),
                subscription=subscription,
            ),
        )
        return index

    def reset(self) -> None:
        """Re-arm the gate so it can fire again."""

        for slot in self._slots:
            slot.fired = False
        self._fired = False

    def close(self) -> None:
        for slot in self._slots:
            slot.subscription.cancel()

    def _handle_trigger(self, index: int) -> None:
        slot = self._slots[index]
        slot.fired = True
        self._progress(
            f"{self._owner_name} received a submit trigger from "
            f"{slot.source_name} ({slot.signal_name})",
        )
        if self._fired:
            return
        if all(item.fired for item in self._slots):
            self._fired = True
            self._on_fire()
