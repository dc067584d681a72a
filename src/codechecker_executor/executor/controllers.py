"""Controllers for executor CLI commands."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from codechecker_executor.config import ExecutorSettings
from codechecker_executor.executor.backend import ProcessRunner
from codechecker_executor.executor.models import ProcessStatus, ProcessStatusEvent
from codechecker_executor.executor.orchestrator import AnalysisOrchestrator, VersionCheckError


@dataclass(slots=True)
class ExecutorCliOptions:
    """Options shared by every executor CLI command."""

    workspace_root: Path | None = None
    output_folder: str | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class AnalyzeFilesCommand:
    """CLI input for single-file analysis."""

    options: ExecutorCliOptions
    files: tuple[Path, ...]


@dataclass(slots=True)
class ExecutorCliResult:
    """Rendered lines plus overall success flag."""

    lines: list[str] = field(default_factory=list)
    success: bool = True


class _StatusRecorder:
    """Status listener turning transitions into CLI lines."""

    def __init__(self, result: ExecutorCliResult) -> None:
        self._result = result
        self._lock = threading.Lock()

    def __call__(self, event: ProcessStatusEvent) -> None:
        process = event.process
        line = f"[{event.status.value}] {event.request.describe()}"
        if process.exit_code is not None and event.is_terminal:
            line += f" exit_code={process.exit_code}"
        if process.error and event.status is not ProcessStatus.FINISHED:
            line += f" error={process.error}"
        with self._lock:
            self._result.lines.append(line)
            if event.status in {ProcessStatus.ERRORED, ProcessStatus.KILLED}:
                self._result.success = False


class ExecutorCliController:
    """Builds an orchestrator per command and reports process transitions."""

    def __init__(self, runner_factory: Callable[[], ProcessRunner] | None = None) -> None:
        self._runner_factory = runner_factory

    def check_version(self, options: ExecutorCliOptions) -> ExecutorCliResult:
        return self._run(options, lambda orchestrator: orchestrator.check_version())

    def analyze_files(self, command: AnalyzeFilesCommand) -> ExecutorCliResult:
        def _submit(orchestrator: AnalysisOrchestrator) -> None:
            for path in command.files:
                orchestrator.analyze_file(path)

        return self._run(command.options, _submit)

    def analyze_project(self, options: ExecutorCliOptions) -> ExecutorCliResult:
        return self._run(options, lambda orchestrator: orchestrator.analyze_project())

    def parse(self, options: ExecutorCliOptions) -> ExecutorCliResult:
        return self._run(options, lambda orchestrator: orchestrator.parse_metadata())

    def _run(
        self,
        options: ExecutorCliOptions,
        action: Callable[[AnalysisOrchestrator], object],
    ) -> ExecutorCliResult:
        settings = ExecutorSettings.from_env(workspace_root=options.workspace_root)
        if options.output_folder is not None:
            settings = settings.with_output_folder(options.output_folder)
        settings.validate()

        orchestrator = AnalysisOrchestrator.from_settings(
            settings,
            runner=self._runner_factory() if self._runner_factory is not None else None,
        )
        deadline = (
            None if options.timeout_seconds is None else time.monotonic() + options.timeout_seconds
        )
        orchestrator.version_timeout_seconds = options.timeout_seconds
        result = ExecutorCliResult()
        with orchestrator.process_status_change(_StatusRecorder(result)):
            try:
                action(orchestrator)
            except VersionCheckError as error:
                result.lines.append(str(error))
                result.success = False
                return result
            if not orchestrator.wait_until_idle(timeout=_remaining(deadline)):
                orchestrator.stop_analysis()
                orchestrator.stop_metadata_tasks()
                result.lines.append(f"Timed out after {options.timeout_seconds}s; stopped.")
                result.success = False
        result.lines.append(f"Reports folder: {settings.reports_path}")
        return result


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())
