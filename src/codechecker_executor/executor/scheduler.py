"""Single-flight scheduler for CodeChecker processes."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Collection
from datetime import UTC, datetime
from functools import partial

from codechecker_executor.executor.backend.base import CommandSpec, ProcessRunner
from codechecker_executor.executor.models import (
    KIND_PRIORITY,
    Process,
    ProcessKind,
    ProcessRequest,
    ProcessStatus,
    ProcessStatusEvent,
)
from codechecker_executor.executor.status_bus import StatusBus, StatusListener, Subscription

logger = logging.getLogger(__name__)

CommandFactory = Callable[[ProcessRequest], CommandSpec]


class ProcessOutcomeError(RuntimeError):
    """A process awaited by the caller did not finish cleanly."""

    def __init__(self, message: str, *, process: Process) -> None:
        super().__init__(message)
        self.process = process


class ProcessFailedError(ProcessOutcomeError):
    """Process could not be spawned, exited non-zero, or its runner faulted."""


class ProcessCancelledError(ProcessOutcomeError):
    """Process was killed on request."""


class ExecutorScheduler:
    """Owns the per-kind queues and the single active process slot.

    Every queue and slot mutation happens under one re-entrant lock, so
    ``submit``, ``cancel_active``, ``clear_queue`` and exit notifications from
    runner threads are mutually exclusive. Status events are published while
    the lock is held; listeners may call back into the scheduler from the same
    thread but must not block on other threads that need it. Transitions caused
    by a listener are queued and delivered after the current event has reached
    every subscriber, so all listeners observe the same order.
    """

    def __init__(
        self,
        *,
        runner: ProcessRunner,
        command_factory: CommandFactory,
        status_bus: StatusBus | None = None,
    ) -> None:
        self._runner = runner
        self._command_factory = command_factory
        self._status_bus = status_bus or StatusBus()
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._queues: dict[ProcessKind, deque[ProcessRequest]] = {
            kind: deque() for kind in KIND_PRIORITY
        }
        self._active: Process | None = None
        self._outbox: deque[ProcessStatusEvent] = deque()
        self._publishing = False

    @property
    def status_bus(self) -> StatusBus:
        return self._status_bus

    @property
    def active_process(self) -> Process | None:
        with self._lock:
            return self._active

    def pending(self, kind: ProcessKind) -> tuple[ProcessRequest, ...]:
        """Snapshot of the requests waiting for ``kind``, oldest first."""

        with self._lock:
            return tuple(self._queues[kind])

    def pending_count(self, kind: ProcessKind) -> int:
        with self._lock:
            return len(self._queues[kind])

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return self._active is None and not any(self._queues.values())

    def process_status_change(self, listener: StatusListener) -> Subscription:
        """Subscribe to running/finished/errored/killed transitions of every process."""

        return self._status_bus.subscribe(listener)

    def submit(self, request: ProcessRequest) -> ProcessRequest:
        """Queue ``request`` unless an equal one is already waiting.

        Returns the request that now represents this work in the queue: either
        ``request`` itself or the earlier duplicate it was merged into.
        """

        with self._lock:
            queue = self._queues[request.kind]
            identity = request.identity()
            for pending in queue:
                if pending.identity() == identity:
                    logger.debug("Dropped duplicate request %s", request.describe())
                    return pending
            queue.append(request)
            logger.debug(
                "Queued %s (pending %s=%d)",
                request.describe(),
                request.kind.value,
                len(queue),
            )
            if self._active is None:
                self._dispatch()
            return request

    def submit_and_wait(
        self,
        request: ProcessRequest,
        *,
        timeout: float | None = None,
    ) -> Process:
        """Submit ``request`` and block the caller until its process terminates.

        Raises:
            ProcessFailedError: the process errored.
            ProcessCancelledError: the process was killed.
            TimeoutError: no terminal status arrived within ``timeout`` seconds.
        """

        waiter = _TerminalWaiter(request)
        waiter.subscription = self.process_status_change(waiter)
        try:
            waiter.expect(self.submit(request))
            process = waiter.wait(timeout)
        finally:
            waiter.subscription.dispose()

        if process is None:
            raise TimeoutError(f"Timed out waiting for {request.describe()}")
        if process.status is ProcessStatus.KILLED:
            raise ProcessCancelledError(f"{request.describe()} was killed", process=process)
        if process.status is ProcessStatus.ERRORED:
            raise ProcessFailedError(
                f"{request.describe()} errored: {process.error or 'unknown error'}",
                process=process,
            )
        return process

    def cancel_active(
        self,
        *,
        kinds: Collection[ProcessKind] | None = None,
    ) -> Process | None:
        """Kill the running process, if any, and move on to the next request.

        With ``kinds`` set, the active process is only killed when it is of one
        of those kinds. Returns the killed process.
        """

        with self._lock:
            process = self._active
            if process is None:
                return None
            if kinds is not None and process.kind not in kinds:
                return None
            try:
                self._runner.kill(process.handle)
            except Exception:
                logger.exception("Runner failed to kill %s", process.request.describe())
            self._active = None
            self._finish(process, ProcessStatus.KILLED, error="cancelled")
            self._dispatch()
            return process

    def clear_queue(self, kind: ProcessKind) -> int:
        """Drop every pending request of ``kind``; the active process is untouched."""

        with self._lock:
            queue = self._queues[kind]
            dropped = len(queue)
            queue.clear()
            if dropped:
                logger.debug("Cleared %d pending %s request(s)", dropped, kind.value)
            self._idle.notify_all()
            return dropped

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is running or queued. Returns False on timeout."""

        with self._idle:
            return self._idle.wait_for(
                lambda: self._active is None and not any(self._queues.values()),
                timeout=timeout,
            )

    def _next_request(self) -> ProcessRequest | None:
        for kind in KIND_PRIORITY:
            queue = self._queues[kind]
            if queue:
                return queue.popleft()
        return None

    def _dispatch(self) -> None:
        while self._active is None:
            request = self._next_request()
            if request is None:
                self._idle.notify_all()
                return

            process = Process(request=request)
            try:
                command = self._command_factory(request)
                process.handle = self._runner.spawn(command, partial(self._on_exit, process))
            except Exception as error:  # noqa: BLE001
                logger.warning("Failed to start %s: %s", request.describe(), error)
                self._finish(process, ProcessStatus.ERRORED, error=str(error))
                continue

            process.started_at = datetime.now(tz=UTC)
            process.status = ProcessStatus.RUNNING
            self._active = process
            logger.info("Started %s", request.describe())
            self._publish(process)

    def _on_exit(
        self,
        process: Process,
        exit_code: int | None,
        fault: BaseException | None,
    ) -> None:
        with self._lock:
            if self._active is not process:
                # Already killed; the runner reports the exit of the reaped process.
                return
            self._active = None
            process.exit_code = exit_code
            if fault is None and exit_code == 0:
                self._finish(process, ProcessStatus.FINISHED)
            elif fault is not None:
                self._finish(process, ProcessStatus.ERRORED, error=f"runner fault: {fault}")
            else:
                self._finish(process, ProcessStatus.ERRORED, error=f"exit code {exit_code}")
            self._dispatch()

    def _finish(self, process: Process, status: ProcessStatus, *, error: str | None = None) -> None:
        process.status = status
        process.error = error
        process.finished_at = datetime.now(tz=UTC)
        process.handle = None
        if status is ProcessStatus.FINISHED:
            logger.info("Finished %s", process.request.describe())
        else:
            logger.info("%s %s (%s)", status.value.capitalize(), process.request.describe(), error)
        self._publish(process)

    def _publish(self, process: Process) -> None:
        self._outbox.append(ProcessStatusEvent(process=process, status=process.status))
        if self._publishing:
            # A listener triggered this transition; the outer call delivers it next.
            return
        self._publishing = True
        try:
            while self._outbox:
                self._status_bus.publish(self._outbox.popleft())
        finally:
            self._publishing = False


class _TerminalWaiter:
    """One-shot listener that captures the terminal event of one submitted request.

    Terminal events for the same identity are buffered until the queued request
    is known, since a spawn failure is published from inside ``submit``.
    """

    def __init__(self, request: ProcessRequest) -> None:
        self._identity = request.identity()
        self._condition = threading.Condition()
        self._expected: ProcessRequest | None = None
        self._seen: list[Process] = []
        self.subscription: Subscription | None = None

    def __call__(self, event: ProcessStatusEvent) -> None:
        if not event.is_terminal or event.request.identity() != self._identity:
            return
        with self._condition:
            self._seen.append(event.process)
            matched = self._match() is not None
            self._condition.notify_all()
        if matched and self.subscription is not None:
            self.subscription.dispose()

    def expect(self, request: ProcessRequest) -> None:
        with self._condition:
            self._expected = request
            self._condition.notify_all()

    def wait(self, timeout: float | None) -> Process | None:
        with self._condition:
            self._condition.wait_for(lambda: self._match() is not None, timeout=timeout)
            return self._match()

    def _match(self) -> Process | None:
        if self._expected is None:
            return None
        for process in self._seen:
            if process.request is self._expected:
                return process
        return None
