"""Translation of process requests into CodeChecker command lines."""

from __future__ import annotations

from codechecker_executor.config import ExecutorSettings
from codechecker_executor.executor.backend.base import CommandSpec, ProcessSpawnError
from codechecker_executor.executor.models import (
    WHOLE_PROJECT,
    ProcessKind,
    ProcessRequest,
)


class CommandBuilder:
    """Render a :class:`CommandSpec` for each request from the current settings.

    Process output is captured under ``<output>/logs``, outside the reports
    folder, so a parse run never writes next to the metadata it reads.
    """

    def __init__(self, settings: ExecutorSettings) -> None:
        self.settings = settings

    def __call__(self, request: ProcessRequest) -> CommandSpec:
        return self.build(request)

    def build(self, request: ProcessRequest) -> CommandSpec:
        executable = self.settings.executable_argv
        if not executable or not executable[0]:
            raise ProcessSpawnError(
                f"CodeChecker executable rendered empty command: {self.settings.executable!r}",
            )

        if request.kind is ProcessKind.VERSION_CHECK:
            args = ("analyzer-version", "--output", "json")
        elif request.kind is ProcessKind.ANALYZE:
            args = self._analyze_args(request)
        else:
            args = ("parse", str(request.target), "--export", "json")

        logs = self.settings.logs_path
        return CommandSpec(
            argv=(*executable, *args),
            cwd=self.settings.workspace_root,
            stdout_path=logs / f"{request.kind.value}.stdout.log",
            stderr_path=logs / f"{request.kind.value}.stderr.log",
        )

    def _analyze_args(self, request: ProcessRequest) -> tuple[str, ...]:
        args: list[str] = [
            "analyze",
            str(self.settings.compile_commands_path),
            "--output",
            str(self.settings.reports_path),
        ]
        if self.settings.thread_count is not None:
            args.extend(("-j", str(self.settings.thread_count)))
        if request.target is not WHOLE_PROJECT:
            args.extend(("--file", str(request.target)))
        args.extend(self.settings.analyze_arguments)
        return tuple(args)
