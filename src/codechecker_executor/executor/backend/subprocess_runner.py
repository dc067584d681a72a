"""Subprocess-based runner for CodeChecker command lines."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from codechecker_executor.executor.backend.base import (
    CommandSpec,
    ExitCallback,
    ProcessSpawnError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubprocessHandle:
    """Running OS process plus the log files it writes to."""

    command: CommandSpec
    popen: subprocess.Popen[str]
    outputs: ExitStack
    watcher: threading.Thread | None = None

    @property
    def pid(self) -> int:
        return self.popen.pid


class SubprocessRunner:
    """Spawn each command with ``subprocess.Popen`` and watch its exit on a daemon thread."""

    def __init__(self, *, terminate_grace_seconds: float = 2.0) -> None:
        self.terminate_grace_seconds = terminate_grace_seconds

    def spawn(self, command: CommandSpec, on_exit: ExitCallback) -> SubprocessHandle:
        if not command.argv:
            raise ProcessSpawnError("Command line is empty.")

        outputs = ExitStack()
        try:
            stdout_handle = _open_log(outputs, command.stdout_path)
            stderr_handle = _open_log(outputs, command.stderr_path)
            env = os.environ.copy()
            env.update(command.env)
            popen = subprocess.Popen(  # noqa: S603
                list(command.argv),
                cwd=command.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=stdout_handle,
                stderr=stderr_handle,
                text=True,
            )
        except FileNotFoundError as error:
            outputs.close()
            raise ProcessSpawnError(f"Command not found: {command.head}") from error
        except OSError as error:
            outputs.close()
            raise ProcessSpawnError(f"Failed to start {command.head}: {error}") from error

        handle = SubprocessHandle(command=command, popen=popen, outputs=outputs)
        handle.watcher = threading.Thread(
            target=self._watch,
            args=(handle, on_exit),
            daemon=True,
            name=f"codechecker-exit-{popen.pid}",
        )
        handle.watcher.start()
        logger.debug("Spawned pid=%d: %s", popen.pid, " ".join(command.argv))
        return handle

    def kill(self, handle: SubprocessHandle) -> None:
        _terminate_process(handle.popen, grace_seconds=self.terminate_grace_seconds)

    def _watch(self, handle: SubprocessHandle, on_exit: ExitCallback) -> None:
        try:
            returncode = handle.popen.wait()
        except Exception as error:  # noqa: BLE001
            handle.outputs.close()
            on_exit(None, error)
            return
        handle.outputs.close()
        on_exit(returncode, None)


def _open_log(stack: ExitStack, path: Path | None) -> IO[str] | int:
    if path is None:
        return subprocess.DEVNULL
    path.parent.mkdir(parents=True, exist_ok=True)
    return stack.enter_context(path.open("w", encoding="utf-8"))


def _terminate_process(process: subprocess.Popen[str], *, grace_seconds: float) -> None:
    if process.poll() is not None:
        return
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=grace_seconds)
