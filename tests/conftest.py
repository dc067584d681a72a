"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from codechecker_executor.config import ExecutorSettings
from codechecker_executor.executor.backend import CommandSpec, ExitCallback, ProcessSpawnError
from codechecker_executor.executor.commands import CommandBuilder
from codechecker_executor.executor.orchestrator import AnalysisOrchestrator
from codechecker_executor.executor.scheduler import ExecutorScheduler

FAKE_CODECHECKER_EXECUTABLE = (
    f"{shlex.quote(sys.executable)} -m codechecker_executor.executor.backend.fake_codechecker"
)


@dataclass(slots=True)
class FakeHandle:
    """Process handle controlled by the test."""

    command: CommandSpec
    on_exit: ExitCallback
    killed: bool = False
    exited: bool = False

    @property
    def subcommand(self) -> str:
        return self.command.argv[1]

    def exit(self, exit_code: int | None = 0, fault: BaseException | None = None) -> None:
        self.exited = True
        self.on_exit(exit_code, fault)


@dataclass(slots=True)
class FakeRunner:
    """In-memory runner: nothing is spawned until the test says so.

    Subcommands listed in ``auto_exit`` exit with the given code on a helper
    thread right after spawn; subcommands in ``fail_spawn`` cannot start.
    """

    auto_exit: dict[str, int] = field(default_factory=dict)
    fail_spawn: set[str] = field(default_factory=set)
    handles: list[FakeHandle] = field(default_factory=list)
    kill_log: list[FakeHandle] = field(default_factory=list)

    def spawn(self, command: CommandSpec, on_exit: ExitCallback) -> FakeHandle:
        subcommand = command.argv[1]
        if subcommand in self.fail_spawn:
            raise ProcessSpawnError(f"Command not found: {command.head}")
        handle = FakeHandle(command=command, on_exit=on_exit)
        self.handles.append(handle)
        if subcommand in self.auto_exit:
            threading.Thread(
                target=handle.exit,
                args=(self.auto_exit[subcommand],),
                daemon=True,
            ).start()
        return handle

    def kill(self, handle: FakeHandle) -> None:
        handle.killed = True
        self.kill_log.append(handle)

    def spawned(self, subcommand: str) -> list[FakeHandle]:
        return [handle for handle in self.handles if handle.subcommand == subcommand]

    @property
    def last(self) -> FakeHandle:
        return self.handles[-1]


@pytest.fixture()
def settings(tmp_path: Path) -> ExecutorSettings:
    return ExecutorSettings(executable="CodeChecker", workspace_root=tmp_path)


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def scheduler(settings: ExecutorSettings, fake_runner: FakeRunner) -> ExecutorScheduler:
    return ExecutorScheduler(runner=fake_runner, command_factory=CommandBuilder(settings))


@pytest.fixture()
def orchestrator(settings: ExecutorSettings, fake_runner: FakeRunner) -> AnalysisOrchestrator:
    fake_runner.auto_exit["analyzer-version"] = 0
    return AnalysisOrchestrator.from_settings(settings, runner=fake_runner)


@pytest.fixture()
def fake_codechecker_settings(tmp_path: Path) -> ExecutorSettings:
    """Settings that run the bundled fake CodeChecker through a real subprocess."""

    return ExecutorSettings(
        executable=FAKE_CODECHECKER_EXECUTABLE,
        workspace_root=tmp_path,
        terminate_grace_seconds=1.0,
    )


@pytest.fixture()
def fake_codechecker_executable() -> str:
    return FAKE_CODECHECKER_EXECUTABLE
