"""Domain policy on top of the scheduler: version gating, analysis and parsing."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path

from codechecker_executor.config import ExecutorSettings
from codechecker_executor.executor.backend import ProcessRunner, SubprocessRunner
from codechecker_executor.executor.commands import CommandBuilder
from codechecker_executor.executor.models import (
    WHOLE_PROJECT,
    Process,
    ProcessKind,
    ProcessRequest,
    ProcessStatus,
    ProcessStatusEvent,
)
from codechecker_executor.executor.scheduler import ExecutorScheduler, ProcessOutcomeError
from codechecker_executor.executor.status_bus import StatusListener, Subscription

logger = logging.getLogger(__name__)

METADATA_KINDS = frozenset({ProcessKind.PARSE, ProcessKind.VERSION_CHECK})


class VersionCheckError(RuntimeError):
    """CodeChecker version check did not pass; analysis was not queued."""


@dataclass(slots=True)
class SessionState:
    """Policy state that lives as long as one host session."""

    version_checked: bool = False


class AnalysisOrchestrator:
    """Entry point for hosts: maps user and file-system intents to scheduled processes.

    Methods that gate on the version check (``check_version``, ``analyze_file``,
    ``analyze_project``, ``handle_document_opened``) block the calling thread
    until the check completes, so they must not be called from inside a status
    listener.

    Every successfully finished analysis is followed by a parse of the reports
    folder.
    """

    def __init__(
        self,
        *,
        scheduler: ExecutorScheduler,
        command_builder: CommandBuilder,
        session: SessionState | None = None,
        version_timeout_seconds: float | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.command_builder = command_builder
        self.session = session or SessionState()
        self.version_timeout_seconds = version_timeout_seconds
        self._version_lock = threading.Lock()
        self._parse_after_analysis = scheduler.process_status_change(self._on_status_change)

    @classmethod
    def from_settings(
        cls,
        settings: ExecutorSettings,
        *,
        runner: ProcessRunner | None = None,
        session: SessionState | None = None,
    ) -> AnalysisOrchestrator:
        command_builder = CommandBuilder(settings)
        scheduler = ExecutorScheduler(
            runner=runner
            or SubprocessRunner(terminate_grace_seconds=settings.terminate_grace_seconds),
            command_factory=command_builder,
        )
        return cls(scheduler=scheduler, command_builder=command_builder, session=session)

    @property
    def settings(self) -> ExecutorSettings:
        return self.command_builder.settings

    @property
    def version_checked(self) -> bool:
        return self.session.version_checked

    @property
    def active_process(self) -> Process | None:
        return self.scheduler.active_process

    def pending_count(self, kind: ProcessKind) -> int:
        return self.scheduler.pending_count(kind)

    def process_status_change(self, listener: StatusListener) -> Subscription:
        return self.scheduler.process_status_change(listener)

    def check_version(self) -> bool:
        """Run ``CodeChecker analyzer-version`` once per session.

        Concurrent callers share a single check. Returns whether the check
        finished successfully.
        """

        if self.session.version_checked:
            return True
        with self._version_lock:
            if self.session.version_checked:
                return True
            try:
                self.scheduler.submit_and_wait(
                    ProcessRequest.version_check(),
                    timeout=self.version_timeout_seconds,
                )
            except ProcessOutcomeError as error:
                logger.warning("CodeChecker version check failed: %s", error)
                self.session.version_checked = False
                return False
            except TimeoutError:
                logger.warning(
                    "CodeChecker version check timed out after %ss; stopping it",
                    self.version_timeout_seconds,
                )
                self.scheduler.clear_queue(ProcessKind.VERSION_CHECK)
                self.scheduler.cancel_active(kinds={ProcessKind.VERSION_CHECK})
                self.session.version_checked = False
                return False
            self.session.version_checked = True
            return True

    def analyze_file(self, target: Path | str) -> ProcessRequest:
        """Queue analysis of one source file once the version check has passed."""

        self._require_version()
        return self.scheduler.submit(ProcessRequest.analyze(self._resolve(target)))

    def analyze_project(self) -> ProcessRequest:
        self._require_version()
        return self.scheduler.submit(ProcessRequest.analyze(WHOLE_PROJECT))

    def parse_metadata(self) -> ProcessRequest:
        """Queue a read-only parse of the current reports folder."""

        return self.scheduler.submit(ProcessRequest.parse(self.settings.reports_path))

    def stop_analysis(self) -> Process | None:
        """Drop queued analyses and kill the running one, if any."""

        self.scheduler.clear_queue(ProcessKind.ANALYZE)
        return self.scheduler.cancel_active(kinds={ProcessKind.ANALYZE})

    def stop_metadata_tasks(self) -> Process | None:
        """Drop queued parse and version check work and kill it if running."""

        for kind in METADATA_KINDS:
            self.scheduler.clear_queue(kind)
        return self.scheduler.cancel_active(kinds=METADATA_KINDS)

    def reset_session(self) -> None:
        with self._version_lock:
            self.session.version_checked = False

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        return self.scheduler.wait_until_idle(timeout=timeout)

    # -- host events -----------------------------------------------------------

    def handle_document_opened(self, path: Path | str) -> None:
        if not self.check_version():
            return
        self.parse_metadata()
        if self.settings.analyze_on_open:
            self.analyze_file(path)

    def handle_output_folder_changed(self, output_folder: str | None) -> None:
        self.command_builder.settings = self.settings.with_output_folder(output_folder)
        logger.info("Output folder changed to %s", self.settings.output_path)
        self.parse_metadata()

    def handle_metadata_changed(self) -> None:
        self.parse_metadata()

    def _on_status_change(self, event: ProcessStatusEvent) -> None:
        if event.process.kind is ProcessKind.ANALYZE and event.status is ProcessStatus.FINISHED:
            self.parse_metadata()

    def _require_version(self) -> None:
        if not self.check_version():
            raise VersionCheckError(
                "CodeChecker version check failed; analysis was not started.",
            )

    def _resolve(self, target: Path | str) -> Path:
        path = Path(target).expanduser()
        if not path.is_absolute():
            path = self.settings.workspace_root / path
        return Path(os.path.normpath(path))
