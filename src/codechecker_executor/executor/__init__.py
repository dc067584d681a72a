"""Executor for CodeChecker invocations.

The host application asks for four kinds of work: a version probe, analysis of
one file, analysis of the whole project, and parsing of the report metadata.
Each one is an external ``CodeChecker`` process, and only one of them may run
at any time.

- :mod:`.scheduler` keeps one FIFO queue per process kind and a single active
  slot. Duplicate queued requests are dropped. The next request is picked by
  kind priority: version check, then parse, then analyze.
- :mod:`.status_bus` delivers running/finished/errored/killed transitions to
  subscribers that hold disposable handles.
- :mod:`.orchestrator` is what hosts call. It gates analysis on a
  once-per-session version check and maps editor events to parse requests.
- :mod:`.commands` and :mod:`.backend` turn requests into command lines and OS
  processes.
"""

from codechecker_executor.executor.models import (
    WHOLE_PROJECT,
    Process,
    ProcessKind,
    ProcessRequest,
    ProcessStatus,
    ProcessStatusEvent,
)
from codechecker_executor.executor.orchestrator import (
    AnalysisOrchestrator,
    SessionState,
    VersionCheckError,
)
from codechecker_executor.executor.scheduler import (
    ExecutorScheduler,
    ProcessCancelledError,
    ProcessFailedError,
    ProcessOutcomeError,
)
from codechecker_executor.executor.status_bus import (
    StatusBus,
    Subscription,
    SubscriptionDisposedError,
)

__all__ = [
    "WHOLE_PROJECT",
    "AnalysisOrchestrator",
    "ExecutorScheduler",
    "Process",
    "ProcessCancelledError",
    "ProcessFailedError",
    "ProcessKind",
    "ProcessOutcomeError",
    "ProcessRequest",
    "ProcessStatus",
    "ProcessStatusEvent",
    "SessionState",
    "StatusBus",
    "Subscription",
    "SubscriptionDisposedError",
    "VersionCheckError",
]
