"""Runtime configuration for the CodeChecker executor."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path

WORKSPACE_FOLDER_PLACEHOLDER = "${workspaceFolder}"
DEFAULT_OUTPUT_FOLDER = f"{WORKSPACE_FOLDER_PLACEHOLDER}/.codechecker"


@dataclass(slots=True)
class ExecutorSettings:
    """CodeChecker invocation settings."""

    executable: str = "CodeChecker"
    workspace_root: Path = field(default_factory=Path.cwd)
    output_folder: str = DEFAULT_OUTPUT_FOLDER
    compile_commands: str | None = None
    analyze_arguments: tuple[str, ...] = ()
    thread_count: int | None = None
    analyze_on_open: bool = False
    terminate_grace_seconds: float = 2.0

    @classmethod
    def from_env(cls, workspace_root: Path | None = None) -> ExecutorSettings:
        """Load settings from environment with defaults suited for a local checkout."""

        thread_count_raw = os.getenv("CODECHECKER_EXECUTOR_THREAD_COUNT", "").strip()
        return cls(
            executable=os.getenv("CODECHECKER_EXECUTOR_EXECUTABLE", "CodeChecker"),
            workspace_root=workspace_root
            or Path(os.getenv("CODECHECKER_EXECUTOR_WORKSPACE_ROOT", str(Path.cwd()))),
            output_folder=os.getenv(
                "CODECHECKER_EXECUTOR_OUTPUT_FOLDER",
                DEFAULT_OUTPUT_FOLDER,
            ),
            compile_commands=os.getenv("CODECHECKER_EXECUTOR_COMPILE_COMMANDS") or None,
            analyze_arguments=tuple(
                shlex.split(os.getenv("CODECHECKER_EXECUTOR_ANALYZE_ARGUMENTS", "")),
            ),
            thread_count=_parse_thread_count(thread_count_raw) if thread_count_raw else None,
            analyze_on_open=_env_bool("CODECHECKER_EXECUTOR_ANALYZE_ON_OPEN", default=False),
            terminate_grace_seconds=float(
                os.getenv("CODECHECKER_EXECUTOR_TERMINATE_GRACE_SECONDS", "2.0"),
            ),
        )

    def with_output_folder(self, output_folder: str | None) -> ExecutorSettings:
        """Copy of the settings pointing at ``output_folder`` (default folder when None)."""

        return replace(self, output_folder=output_folder or DEFAULT_OUTPUT_FOLDER)

    @property
    def executable_argv(self) -> tuple[str, ...]:
        return tuple(shlex.split(self.executable))

    @property
    def output_path(self) -> Path:
        return self.resolve_path(self.output_folder)

    @property
    def reports_path(self) -> Path:
        return self.output_path / "reports"

    @property
    def metadata_path(self) -> Path:
        return self.reports_path / "metadata.json"

    @property
    def logs_path(self) -> Path:
        return self.output_path / "logs"

    @property
    def compile_commands_path(self) -> Path:
        if self.compile_commands:
            return self.resolve_path(self.compile_commands)
        return self.output_path / "compile_commands.json"

    def resolve_path(self, value: str) -> Path:
        """Expand ``${workspaceFolder}`` and anchor relative paths at the workspace root."""

        expanded = value.replace(WORKSPACE_FOLDER_PLACEHOLDER, str(self.workspace_root))
        path = Path(expanded).expanduser()
        if not path.is_absolute():
            path = self.workspace_root / path
        return path

    def validate(self) -> None:
        """Raise configuration error if the executable or numeric knobs are unusable."""

        if not self.executable.strip():
            raise ValueError("CODECHECKER_EXECUTOR_EXECUTABLE must not be empty.")
        if not self.executable_argv or not self.executable_argv[0]:
            raise ValueError(
                f"CODECHECKER_EXECUTOR_EXECUTABLE rendered empty command: {self.executable!r}",
            )
        if not self.output_folder.strip():
            raise ValueError("CODECHECKER_EXECUTOR_OUTPUT_FOLDER must not be empty.")
        if self.thread_count is not None and self.thread_count <= 0:
            raise ValueError("CODECHECKER_EXECUTOR_THREAD_COUNT must be > 0.")
        if self.terminate_grace_seconds < 0:
            raise ValueError("CODECHECKER_EXECUTOR_TERMINATE_GRACE_SECONDS must be >= 0.")


def _parse_thread_count(value: str) -> int:
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(
            f"Invalid CODECHECKER_EXECUTOR_THREAD_COUNT value: {value!r}",
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
