"""Job group coordination.

A :class:`JobGroup` owns an ordered set of jobs, listens to each job's
``submitted``/``completed``/``failed`` signals and turns them into one
group-level lifecycle:

- ``completed`` fires exactly once, on the completion signal that leaves every
  job completed.
- ``failed`` is sticky: any job failure marks the group failed until an
  explicit ``resubmit()``. Sibling jobs are not cancelled; cascading
  cancellation is left to the caller (see ``GroupRegistry.cancel_all``).
- ``submit()`` is idempotent; ``resubmit()`` clears every derived flag before
  resubmitting each job.

Trigger gates combine signals from any number of sources with AND semantics
and submit the group once all of them have fired, which is how groups are
chained into pipelines.
"""

from jobgroups.groups.group import FailureTiming, JobGroup
from jobgroups.groups.job import BaseJob, Job, LifecycleSignal
from jobgroups.groups.registry import GroupRegistry, get_registry, init_registry, reset_registry
from jobgroups.groups.signals import Signal, SignalEmitter, SignalSource, Subscription
from jobgroups.groups.status import GroupState, GroupStatusReport, build_status_report
from jobgroups.groups.triggers import TriggerGate

__all__ = [
    "BaseJob",
    "FailureTiming",
    "GroupRegistry",
    "GroupState",
    "GroupStatusReport",
    "Job",
    "JobGroup",
    "LifecycleSignal",
    "Signal",
    "SignalEmitter",
    "SignalSource",
    "Subscription",
    "TriggerGate",
    "build_status_report",
    "get_registry",
    "init_registry",
    "reset_registry",
]
